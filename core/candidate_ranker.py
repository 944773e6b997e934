#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
候选主程序排序模块

以文件大小作为主程序的近似判断：安装、卸载、运行库、启动器、崩溃报告、
更新程序等辅助文件按文件名排除，其余按大小从大到小排列。
"""

import fnmatch
import os
from collections import deque
from loguru import logger

from models.session import CandidateExecutable


DEFAULT_EXCLUDE_PATTERNS = (
    "unins*",
    "*uninstall*",
    "*setup*",
    "*install*",
    "*redist*",
    "vc_redist*",
    "dxwebsetup*",
    "dotnet*",
    "*launcher*",
    "*crashhandler*",
    "*crashreport*",
    "*crashpad*",
    "*bugreport*",
    "*updater*",
    "*_be.exe",
    "easyanticheat*",
)


class ExecutableCandidateRanker:
    """候选主程序排序器"""

    def __init__(self, exclude_patterns=None, extensions=(".exe",), max_depth=3,
                 detection_limit=5, display_limit=10):
        """
        Args:
            exclude_patterns (iterable, optional): 排除的文件名通配符，默认 DEFAULT_EXCLUDE_PATTERNS
            extensions (iterable): 可执行文件扩展名
            max_depth (int): 默认扫描深度
            detection_limit (int): 启动检测使用的候选数量
            display_limit (int): 展示使用的候选数量
        """
        patterns = DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns
        self.exclude_patterns = tuple(p.lower() for p in patterns)
        self.extensions = {e.lower() for e in extensions}
        self.max_depth = max_depth
        self.detection_limit = detection_limit
        self.display_limit = display_limit

    @classmethod
    def from_context(cls, context):
        return cls(
            # 配置中的通配符追加到内置列表之后
            exclude_patterns=DEFAULT_EXCLUDE_PATTERNS + tuple(context.exclude_patterns),
            extensions=context.executable_extensions,
            max_depth=context.max_depth,
            detection_limit=context.detection_limit,
            display_limit=context.display_limit,
        )

    def is_excluded(self, filename):
        name = filename.lower()
        return any(fnmatch.fnmatchcase(name, p) for p in self.exclude_patterns)

    def is_executable(self, path):
        suffix = os.path.splitext(path)[1].lower()
        if suffix:
            return suffix in self.extensions
        # POSIX 下无扩展名但有执行权限的文件
        return os.name != "nt" and os.access(path, os.X_OK)

    def rank(self, install_path, max_depth=None, limit=None):
        """
        枚举并排序候选主程序

        Args:
            install_path (str): 游戏安装目录
            max_depth (int, optional): 向下扫描的目录层数，安装目录本身为第0层
            limit (int, optional): 返回数量上限，None 表示不限

        Returns:
            list[CandidateExecutable]: 按文件大小降序排列的候选列表
        """
        if max_depth is None:
            max_depth = self.max_depth
        if not install_path or not os.path.isdir(install_path):
            logger.warning(f"安装目录不存在: {install_path}")
            return []

        candidates = []
        queue = deque([(install_path, 0)])
        while queue:
            current, depth = queue.popleft()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                logger.debug(f"无法读取目录: {current} - {str(e)}")
                continue

            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        if depth < max_depth:
                            queue.append((entry.path, depth + 1))
                        continue
                    if not entry.is_file():
                        continue
                    if self.is_excluded(entry.name) or not self.is_executable(entry.path):
                        continue
                    candidates.append(CandidateExecutable(path=entry.path, size_bytes=entry.stat().st_size))
                except OSError as e:
                    logger.debug(f"无法读取文件信息: {entry.path} - {str(e)}")

        candidates.sort(key=lambda c: c.size_bytes, reverse=True)
        if limit is not None:
            candidates = candidates[:limit]
        logger.debug(f"{install_path} 共 {len(candidates)} 个候选主程序")
        return candidates

    def rank_for_display(self, game):
        """展示用的候选列表"""
        return self.rank(game.install_path, limit=self.display_limit)

    def rank_for_detection(self, game):
        """
        启动检测用的候选列表

        清单中声明的启动程序若存在且未被排除，也并入候选后再统一排序。

        Args:
            game (Game): 游戏记录

        Returns:
            list[CandidateExecutable]: 候选列表
        """
        ranked = self.rank(game.install_path)
        if game.install_path and game.launch_executables:
            known = {os.path.normcase(c.path) for c in ranked}
            for exe in game.launch_executables:
                path = os.path.join(game.install_path, *exe.replace("\\", "/").split("/"))
                if os.path.normcase(path) in known or self.is_excluded(os.path.basename(path)):
                    continue
                try:
                    size = os.path.getsize(path)
                except OSError:
                    continue
                known.add(os.path.normcase(path))
                ranked.append(CandidateExecutable(path=path, size_bytes=size))
            ranked.sort(key=lambda c: c.size_bytes, reverse=True)
        return ranked[:self.detection_limit]
