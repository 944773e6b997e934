#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
会话相关数据模型
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Game:
    """已安装游戏记录，由清单文件解析得到，创建后不可修改"""

    app_id: int
    name: str
    install_dir: Optional[str]
    install_path: Optional[str]
    manifest_path: str
    library_path: str
    launch_executables: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CandidateExecutable:
    """候选主程序文件"""

    path: str
    size_bytes: int

    @property
    def stem(self) -> str:
        return _stem(self.path)


@dataclass(frozen=True)
class ProcessSnapshot:
    """某一时刻的进程观测结果（只读）"""

    pid: int
    name: str
    path: Optional[str] = None
    start_time: Optional[float] = None
    working_set_bytes: Optional[int] = None
    has_window: bool = False

    @property
    def stem(self) -> str:
        return _stem(self.name)


class DetectionSignal(Enum):
    """启动检测信号，按优先级从高到低排列"""

    REGISTRY_FLAG = "registry_flag"
    KNOWN_EXECUTABLE_MATCH = "known_executable_match"
    WINDOW_HANDLE_HEURISTIC = "window_handle_heuristic"


class SessionState(Enum):
    """会话状态"""

    IDLE = "idle"
    AWAITING_START = "awaiting_start"
    RUNNING = "running"
    EXITED = "exited"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.EXITED, SessionState.TIMED_OUT)


# 允许的状态迁移
STATE_TRANSITIONS = {
    SessionState.IDLE: {SessionState.AWAITING_START},
    SessionState.AWAITING_START: {SessionState.RUNNING, SessionState.TIMED_OUT},
    SessionState.RUNNING: {SessionState.EXITED},
    SessionState.EXITED: set(),
    SessionState.TIMED_OUT: set(),
}


@dataclass(frozen=True)
class DetectionResult:
    """
    启动检测结果

    matched_process_ids 为空表示仅由运行标志确认（按标志跟踪），
    否则按进程跟踪。candidate_names 为候选主程序名（不含扩展名），
    供按标志跟踪时采集进程统计使用。
    """

    app_id: int
    signal: DetectionSignal
    matched_process_ids: Tuple[int, ...] = ()
    candidate_names: Tuple[str, ...] = ()

    @property
    def process_tracked(self) -> bool:
        return bool(self.matched_process_ids)


@dataclass
class DetectionOutcome:
    """detect_start 的返回值，超时时 result 为 None，error 为 DetectionTimeout"""

    state: SessionState
    result: Optional[DetectionResult]
    elapsed_seconds: float
    error: Optional[Exception] = None

    @property
    def timed_out(self) -> bool:
        return self.state is SessionState.TIMED_OUT


@dataclass(frozen=True)
class ProcessUsage:
    """单个进程的资源占用读数"""

    pid: int
    name: str
    runtime_seconds: Optional[float]
    memory_bytes: Optional[int]
    cpu_time_seconds: Optional[float]


@dataclass
class ProcessStats:
    """会话结束时的单进程统计，读取失败的字段为 None"""

    name: str
    pid: int
    runtime_seconds: Optional[float] = None
    peak_memory_bytes: Optional[int] = None
    cpu_time_seconds: Optional[float] = None

    @property
    def partial(self) -> bool:
        return None in (self.runtime_seconds, self.peak_memory_bytes, self.cpu_time_seconds)


@dataclass
class SessionSummary:
    """会话汇总"""

    duration_seconds: float
    per_process_stats: List[ProcessStats] = field(default_factory=list)
    tracking: str = "process"
    cancelled: bool = False


@dataclass
class SessionContext:
    """
    会话上下文，贯穿发现、检测与监控的全部调用

    由 ConfigManager.build_session_context() 根据配置文件生成。
    """

    steam_root: Optional[str] = None
    detect_timeout: float = 30.0
    detect_poll_interval: float = 1.0
    monitor_poll_interval: float = 5.0
    stats_interval: float = 30.0
    monitor_max_duration: Optional[float] = None
    max_depth: int = 3
    detection_limit: int = 5
    display_limit: int = 10
    executable_extensions: Tuple[str, ...] = (".exe",)
    exclude_patterns: Tuple[str, ...] = ()
    window_deny_patterns: Tuple[str, ...] = ()
    uri_scheme: str = "steam"


def _stem(name: str) -> str:
    """取文件名主干并转为小写，兼容 Windows 与 POSIX 路径分隔符"""
    base = (name or "").replace("\\", "/").rsplit("/", 1)[-1]
    if "." in base:
        base = base.rsplit(".", 1)[0]
    return base.lower()
