#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
异常定义模块

只有 LibraryNotFound、LaunchError 与 InvalidStateTransition 会传递给调用方，
其余异常在单个文件或单次轮询内部处理，不会中断整体扫描或循环。
"""

__all__ = [
    "SessionWatchError",
    "ManifestParseError",
    "LibraryNotFound",
    "RunFlagUnavailable",
    "ProcessQueryError",
    "DetectionTimeout",
    "LaunchError",
    "InvalidStateTransition",
]


class SessionWatchError(Exception):
    """所有异常的基类"""


class ManifestParseError(SessionWatchError):
    """单个清单文件无法解析出 appid 与 name，跳过该文件"""

    def __init__(self, manifest_path, reason):
        super().__init__(f"{manifest_path}: {reason}")
        self.manifest_path = manifest_path
        self.reason = reason


class LibraryNotFound(SessionWatchError):
    """Steam 根目录不存在或无效"""


class RunFlagUnavailable(SessionWatchError):
    """运行标志无法读取，视为未设置"""


class ProcessQueryError(SessionWatchError):
    """进程信息查询失败（进程已退出、无权限等），仅影响本次读取"""

    def __init__(self, pid, reason):
        super().__init__(f"PID {pid}: {reason}")
        self.pid = pid


class DetectionTimeout(SessionWatchError):
    """超时前未检测到任何启动信号"""

    def __init__(self, app_id, timeout):
        super().__init__(f"AppID {app_id} 在 {timeout:g} 秒内未检测到启动")
        self.app_id = app_id
        self.timeout = timeout


class LaunchError(SessionWatchError):
    """系统拒绝处理启动 URI"""


class InvalidStateTransition(SessionWatchError):
    """会话状态只能单向前进"""
