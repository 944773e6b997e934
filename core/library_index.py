#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Steam 游戏库索引模块

清单与库列表文件均为花括号嵌套的键值文本，这里只做宽松的正则扫描，
不做严格语法解析，字段缺失或格式错误的清单跳过并记录警告。
"""

import os
import re
from loguru import logger

from core.exceptions import LibraryNotFound, ManifestParseError
from models.session import Game


_PATH_RE = re.compile(r'"path"\s+"((?:[^"\\]|\\.)*)"', re.IGNORECASE)
_APPID_RE = re.compile(r'"appid"\s+"\s*(\d+)\s*"', re.IGNORECASE)
_NAME_RE = re.compile(r'"name"\s+"((?:[^"\\]|\\.)*)"', re.IGNORECASE)
_INSTALLDIR_RE = re.compile(r'"installdir"\s+"((?:[^"\\]|\\.)*)"', re.IGNORECASE)
_EXECUTABLE_RE = re.compile(r'"executable"\s+"((?:[^"\\]|\\.)*)"', re.IGNORECASE)

MANIFEST_PREFIX = "appmanifest_"
MANIFEST_SUFFIX = ".acf"


def unescape_value(value):
    """还原转义字符，库列表中的路径分隔符写作 \\\\"""
    return value.replace("\\\\", "\\").replace('\\"', '"').strip()


def parse_library_paths(content):
    """
    从库列表文本中提取全部 path 值

    Args:
        content (str): libraryfolders.vdf 内容

    Returns:
        list[str]: 按出现顺序排列的路径
    """
    return [unescape_value(p) for p in _PATH_RE.findall(content)]


def parse_manifest(content, manifest_path, library_path):
    """
    解析单个清单

    Args:
        content (str): 清单文本
        manifest_path (str): 清单文件路径
        library_path (str): 所在库的 steamapps 目录

    Returns:
        Game: 游戏记录

    Raises:
        ManifestParseError: 缺少 appid 或 name
    """
    appid_match = _APPID_RE.search(content)
    if not appid_match:
        raise ManifestParseError(manifest_path, "缺少 appid")
    name_match = _NAME_RE.search(content)
    if not name_match or not unescape_value(name_match.group(1)):
        raise ManifestParseError(manifest_path, "缺少 name")

    install_dir = None
    install_path = None
    installdir_match = _INSTALLDIR_RE.search(content)
    if installdir_match:
        install_dir = unescape_value(installdir_match.group(1)) or None
    if install_dir:
        install_path = os.path.join(library_path, "common", install_dir)

    executables = []
    for raw in _EXECUTABLE_RE.findall(content):
        exe = unescape_value(raw)
        if exe and exe not in executables:
            executables.append(exe)

    return Game(
        app_id=int(appid_match.group(1)),
        name=unescape_value(name_match.group(1)),
        install_dir=install_dir,
        install_path=install_path,
        manifest_path=manifest_path,
        library_path=library_path,
        launch_executables=tuple(executables),
    )


class LibraryIndex:
    """Steam 游戏库索引"""

    LIBRARY_LIST_CANDIDATES = (
        ("steamapps", "libraryfolders.vdf"),
        ("config", "libraryfolders.vdf"),
    )

    def __init__(self, steam_root=None):
        """
        Args:
            steam_root (str, optional): Steam 根目录，discover() 未传入路径时使用
        """
        self.steam_root = steam_root

    def discover(self, root_path=None):
        """
        发现全部已安装游戏

        Args:
            root_path (str, optional): Steam 根目录

        Returns:
            list[Game]: 按库顺序、库内按文件系统枚举顺序排列的游戏列表，每个 AppID 至多一条

        Raises:
            LibraryNotFound: 根目录无效
        """
        root_path = root_path or self.steam_root
        if not root_path or not os.path.isdir(root_path):
            raise LibraryNotFound(f"Steam根目录不存在: {root_path}")
        default_library = os.path.join(root_path, "steamapps")
        if not os.path.isdir(default_library):
            raise LibraryNotFound(f"Steam根目录下没有steamapps目录: {root_path}")

        games = []
        seen = {}
        skipped = 0
        for library in self.library_roots(root_path):
            for manifest_path in self._iter_manifests(library):
                try:
                    game = self._load_manifest(manifest_path, library)
                except ManifestParseError as e:
                    skipped += 1
                    logger.warning(f"跳过无效清单: {str(e)}")
                    continue
                if game.app_id in seen:
                    logger.debug(
                        f"AppID {game.app_id} 已存在于 {seen[game.app_id]}，忽略 {manifest_path}"
                    )
                    continue
                seen[game.app_id] = manifest_path
                games.append(game)

        logger.info(f"共发现 {len(games)} 个已安装游戏，跳过 {skipped} 个无效清单")
        return games

    def find(self, app_id, root_path=None):
        """
        按 AppID 查找游戏

        Returns:
            Game or None: 未安装时返回None
        """
        app_id = int(app_id)
        for game in self.discover(root_path):
            if game.app_id == app_id:
                return game
        return None

    def library_roots(self, root_path):
        """
        解析全部库目录，默认库在前，其余按库列表文件中的出现顺序

        Args:
            root_path (str): Steam 根目录

        Returns:
            list[str]: steamapps 目录列表
        """
        default_library = os.path.join(root_path, "steamapps")
        roots = [default_library]
        known = {_norm(default_library)}

        for parts in self.LIBRARY_LIST_CANDIDATES:
            list_path = os.path.join(root_path, *parts)
            if not os.path.isfile(list_path):
                continue
            try:
                with open(list_path, "r", encoding="utf-8", errors="ignore") as f:
                    paths = parse_library_paths(f.read())
            except OSError as e:
                logger.warning(f"读取库列表失败: {list_path} - {str(e)}")
                continue

            logger.debug(f"已读取库列表: {list_path}，共 {len(paths)} 个路径")
            if not paths:
                continue
            for path in paths:
                library = os.path.join(path, "steamapps")
                if _norm(library) in known:
                    continue
                if not os.path.isdir(library):
                    logger.warning(f"库目录不存在，已跳过: {library}")
                    continue
                known.add(_norm(library))
                roots.append(library)
            break

        return roots

    @staticmethod
    def _iter_manifests(library):
        try:
            with os.scandir(library) as it:
                entries = [
                    entry.path
                    for entry in it
                    if entry.name.lower().startswith(MANIFEST_PREFIX)
                    and entry.name.lower().endswith(MANIFEST_SUFFIX)
                    and entry.is_file()
                ]
        except OSError as e:
            logger.warning(f"无法枚举库目录: {library} - {str(e)}")
            return []
        return entries

    @staticmethod
    def _load_manifest(manifest_path, library):
        try:
            with open(manifest_path, "r", encoding="utf-8", errors="ignore") as f:
                content = f.read()
        except OSError as e:
            raise ManifestParseError(manifest_path, str(e)) from e
        return parse_manifest(content, manifest_path, library)


def _norm(path):
    return os.path.normcase(os.path.realpath(path))
