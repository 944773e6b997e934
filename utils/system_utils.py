#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
系统工具函数模块

包含 Steam 运行标志读取、Steam 根目录查找以及通过 URI 启动游戏。
"""

import os
import re
import subprocess
import sys
from .logger import logger
from core.exceptions import LaunchError, RunFlagUnavailable


STEAM_REGISTRY_KEY = r"Software\Valve\Steam"
DEFAULT_WINDOWS_STEAM_ROOT = r"C:\Program Files (x86)\Steam"


class RunFlag:
    """
    每个 AppID 的运行标志

    子类实现 _read()，不可用时抛出 RunFlagUnavailable。
    对外的 is_running() 永远不抛异常，标志不可用等同于未设置。
    """

    def is_running(self, app_id):
        """
        检查运行标志

        Args:
            app_id (int): 游戏AppID

        Returns:
            bool: 标志是否已设置
        """
        try:
            return self._read(app_id)
        except RunFlagUnavailable as e:
            logger.debug(f"运行标志不可用，视为未运行: {str(e)}")
            return False

    def _read(self, app_id):
        raise NotImplementedError


class RegistryRunFlag(RunFlag):
    """Windows 注册表 HKCU\\Software\\Valve\\Steam\\Apps\\<appid>\\Running"""

    def _read(self, app_id):
        if os.name != "nt":
            raise RunFlagUnavailable("当前系统没有注册表")

        import winreg

        try:
            key = winreg.OpenKey(winreg.HKEY_CURRENT_USER, rf"{STEAM_REGISTRY_KEY}\Apps\{int(app_id)}")
            try:
                value, _ = winreg.QueryValueEx(key, "Running")
            finally:
                winreg.CloseKey(key)
        except OSError as e:
            raise RunFlagUnavailable(f"AppID {app_id}: {str(e)}") from e

        try:
            return int(value) != 0
        except (TypeError, ValueError) as e:
            raise RunFlagUnavailable(f"AppID {app_id}: 无效的值 {value!r}") from e


class VdfRunFlag(RunFlag):
    """Linux/macOS 下 Steam 写入的 registry.vdf 文本文件"""

    def __init__(self, registry_path=None):
        self.registry_path = registry_path or os.path.join(os.path.expanduser("~"), ".steam", "registry.vdf")

    def _read(self, app_id):
        try:
            with open(self.registry_path, "r", encoding="utf-8", errors="ignore") as f:
                content = f.read()
        except OSError as e:
            raise RunFlagUnavailable(f"{self.registry_path}: {str(e)}") from e

        block = re.search(r'"%d"\s*\{([^{}]*)\}' % int(app_id), content)
        if not block:
            raise RunFlagUnavailable(f"AppID {app_id} 不在 {self.registry_path} 中")

        running = re.search(r'"running"\s+"(\d+)"', block.group(1), re.IGNORECASE)
        if not running:
            return False
        return int(running.group(1)) != 0


def create_run_flag():
    """
    按当前平台创建运行标志读取器

    Returns:
        RunFlag: 运行标志对象
    """
    if os.name == "nt":
        return RegistryRunFlag()
    return VdfRunFlag()


def find_steam_root():
    """
    查找 Steam 安装根目录

    Returns:
        str or None: 找到的根目录，未找到返回None
    """
    if os.name == "nt":
        import winreg

        try:
            key = winreg.OpenKey(winreg.HKEY_CURRENT_USER, STEAM_REGISTRY_KEY)
            try:
                path, _ = winreg.QueryValueEx(key, "SteamPath")
            finally:
                winreg.CloseKey(key)
            if path and os.path.isdir(path):
                logger.debug(f"已从注册表获取Steam路径: {path}")
                return os.path.normpath(path)
        except OSError as e:
            logger.debug(f"从注册表获取Steam路径失败: {str(e)}")
        candidates = [DEFAULT_WINDOWS_STEAM_ROOT]
    elif sys.platform == "darwin":
        candidates = [os.path.expanduser("~/Library/Application Support/Steam")]
    else:
        candidates = [
            os.path.expanduser("~/.steam/steam"),
            os.path.expanduser("~/.local/share/Steam"),
            os.path.expanduser("~/.var/app/com.valvesoftware.Steam/.local/share/Steam"),
        ]

    for path in candidates:
        if os.path.isdir(path):
            logger.debug(f"使用默认Steam路径: {path}")
            return os.path.realpath(path)

    logger.warning("未找到Steam安装目录")
    return None


def build_launch_uri(app_id, options=None, scheme="steam"):
    """
    构建启动 URI: <scheme>://run/<appId>[//<options>]

    Args:
        app_id (int): 游戏AppID
        options (str, optional): 启动参数
        scheme (str): URI 协议名

    Returns:
        str: 启动 URI
    """
    try:
        app_id = int(app_id)
    except (TypeError, ValueError):
        raise LaunchError(f"无效的AppID: {app_id!r}")
    if app_id <= 0:
        raise LaunchError(f"无效的AppID: {app_id}")

    uri = f"{scheme}://run/{app_id}"
    if options:
        uri += f"//{options}"
    return uri


def launch_via_uri(app_id, options=None, scheme="steam"):
    """
    交由系统协议处理程序启动游戏，失败不重试

    Args:
        app_id (int): 游戏AppID
        options (str, optional): 启动参数
        scheme (str): URI 协议名

    Returns:
        str: 已启动的 URI

    Raises:
        LaunchError: 系统拒绝处理该 URI
    """
    uri = build_launch_uri(app_id, options, scheme)
    logger.info(f"启动: {uri}")

    try:
        if os.name == "nt":
            os.startfile(uri)
        else:
            opener = "open" if sys.platform == "darwin" else "xdg-open"
            subprocess.run([opener, uri], check=True, capture_output=True, timeout=15)
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or b"").decode(errors="ignore").strip()
        raise LaunchError(f"系统拒绝启动 {uri}: {stderr or e.returncode}") from e
    except (OSError, subprocess.TimeoutExpired) as e:
        raise LaunchError(f"系统拒绝启动 {uri}: {str(e)}") from e

    return uri
