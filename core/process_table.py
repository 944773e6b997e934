#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
系统进程表读取模块

对引擎而言进程表是只读的。单个进程在枚举与读取详情之间退出或拒绝访问时，
该次读取视为不存在，不向上传递异常。
"""

import os
import time
import psutil
from loguru import logger

from core.exceptions import ProcessQueryError
from models.session import ProcessSnapshot, ProcessUsage


_ITER_ATTRS = ["pid", "name", "exe", "create_time", "memory_info"]


class ProcessTable:
    """基于 psutil 的进程表"""

    def __init__(self, detect_windows=True):
        """
        Args:
            detect_windows (bool): 是否枚举顶层窗口以填充 has_window
        """
        self.detect_windows = detect_windows

    def snapshot(self):
        """
        获取当前进程表快照，顺序与系统枚举顺序一致

        Returns:
            list[ProcessSnapshot]: 进程快照列表
        """
        windowed = self.windowed_pids() if self.detect_windows else set()
        snapshots = []
        try:
            for proc in psutil.process_iter(_ITER_ATTRS):
                try:
                    snapshots.append(self._from_info(proc.info, windowed))
                except ProcessQueryError as e:
                    logger.debug(f"跳过进程: {str(e)}")
        except Exception as e:
            logger.debug(f"枚举进程失败: {str(e)}")
        return snapshots

    def get(self, pid):
        """
        按 PID 重新读取进程

        Args:
            pid (int): 进程ID

        Returns:
            ProcessSnapshot or None: 进程不存在或无法读取时返回None
        """
        try:
            return self._read(pid)
        except ProcessQueryError as e:
            logger.debug(f"读取进程失败: {str(e)}")
            return None

    def usage(self, pid):
        """
        读取进程资源占用

        Args:
            pid (int): 进程ID

        Returns:
            ProcessUsage: 资源占用读数

        Raises:
            ProcessQueryError: 进程已退出或无权限
        """
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                name = proc.name()
                create_time = proc.create_time()
                memory = proc.memory_info().rss
                try:
                    cpu = proc.cpu_times()
                    cpu_time = cpu.user + cpu.system
                except psutil.AccessDenied:
                    cpu_time = None
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
            raise ProcessQueryError(pid, type(e).__name__) from e
        except OSError as e:
            raise ProcessQueryError(pid, str(e)) from e

        return ProcessUsage(
            pid=pid,
            name=name,
            runtime_seconds=max(0.0, time.time() - create_time),
            memory_bytes=memory,
            cpu_time_seconds=cpu_time,
        )

    def windowed_pids(self):
        """
        获取拥有可见顶层窗口的进程ID集合，仅 Windows 有效

        Returns:
            set[int]: 进程ID集合
        """
        if os.name != "nt":
            return set()

        import win32gui
        import win32process

        pids = set()

        def _collect(hwnd, acc):
            try:
                if win32gui.IsWindowVisible(hwnd) and win32gui.GetWindowText(hwnd):
                    _, pid = win32process.GetWindowThreadProcessId(hwnd)
                    acc.add(pid)
            except Exception:
                pass
            return True

        try:
            win32gui.EnumWindows(_collect, pids)
        except Exception as e:
            logger.debug(f"枚举窗口失败: {str(e)}")
        return pids

    def _read(self, pid):
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                info = {
                    "pid": pid,
                    "name": proc.name(),
                    "create_time": proc.create_time(),
                    "memory_info": _safe(proc.memory_info),
                    "exe": _safe(proc.exe),
                }
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
            raise ProcessQueryError(pid, type(e).__name__) from e
        except OSError as e:
            raise ProcessQueryError(pid, str(e)) from e
        return self._from_info(info, set())

    @staticmethod
    def _from_info(info, windowed):
        pid = info.get("pid")
        name = info.get("name")
        if pid is None or not name:
            raise ProcessQueryError(pid, "进程名不可读")
        memory = info.get("memory_info")
        return ProcessSnapshot(
            pid=pid,
            name=name,
            path=info.get("exe") or None,
            start_time=info.get("create_time"),
            working_set_bytes=getattr(memory, "rss", None),
            has_window=pid in windowed,
        )


def _safe(getter):
    """读取可选属性，无权限时返回None"""
    try:
        return getter()
    except psutil.AccessDenied:
        return None
