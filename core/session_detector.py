#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
游戏启动检测模块

每次轮询按固定优先级检查三种信号，命中即结束：
运行标志 > 已知主程序匹配 > 新窗口进程。
"""

import fnmatch
from loguru import logger

from core.exceptions import DetectionTimeout, InvalidStateTransition
from core.poll_loop import PollLoop
from core.process_table import ProcessTable
from models.session import (
    DetectionOutcome,
    DetectionResult,
    DetectionSignal,
    SessionContext,
    SessionState,
    STATE_TRANSITIONS,
)
from utils.system_utils import create_run_flag


DEFAULT_WINDOW_DENY_PATTERNS = (
    "steam",
    "steamwebhelper",
    "steamservice",
    "steamerrorreporter*",
    "gameoverlayui*",
    "*crash*",
    "*helper*",
    "*updater*",
    "*launcher*",
)


class SessionDetector:
    """游戏启动检测器，一个实例只服务一次检测"""

    def __init__(self, context=None, process_table=None, run_flag=None, clock=None, sleep=None):
        """
        Args:
            context (SessionContext, optional): 会话上下文
            process_table (ProcessTable, optional): 进程表
            run_flag (RunFlag, optional): 运行标志读取器
            clock (callable, optional): 单调时钟
            sleep (callable, optional): 休眠函数
        """
        self.context = context or SessionContext()
        self.process_table = process_table or ProcessTable()
        self.run_flag = run_flag or create_run_flag()
        self.deny_patterns = tuple(
            p.lower() for p in (self.context.window_deny_patterns or DEFAULT_WINDOW_DENY_PATTERNS)
        )
        self._clock = clock
        self._sleep = sleep
        self.state = SessionState.IDLE

    def capture_baseline(self):
        """
        启动前的进程表快照，必须在请求检测前立即获取，避免已有窗口造成误判

        Returns:
            list[ProcessSnapshot]: 进程快照列表
        """
        return self.process_table.snapshot()

    def detect_start(self, app_id, candidates, initial_snapshot, timeout=None, poll_interval=None):
        """
        等待游戏启动

        Args:
            app_id (int): 游戏AppID
            candidates (list[CandidateExecutable]): 已排序的候选主程序
            initial_snapshot (list[ProcessSnapshot]): 启动前的进程表快照
            timeout (float, optional): 超时时间（秒），默认取上下文配置
            poll_interval (float, optional): 轮询间隔（秒），默认取上下文配置

        Returns:
            DetectionOutcome: 检测结果，超时不抛异常，由调用方决定是否继续
        """
        timeout = self.context.detect_timeout if timeout is None else timeout
        poll_interval = self.context.detect_poll_interval if poll_interval is None else poll_interval

        self._transition(SessionState.AWAITING_START)
        baseline = {p.pid for p in initial_snapshot}
        candidate_names = tuple(dict.fromkeys(c.stem for c in candidates if c.stem))
        logger.info(
            f"等待 AppID {app_id} 启动，超时 {timeout:g} 秒，候选主程序: {', '.join(candidate_names) or '无'}"
        )

        loop = PollLoop(poll_interval, timeout=timeout, clock=self._clock, sleep=self._sleep)
        for _, elapsed in loop.ticks():
            signal, pids = self._evaluate(app_id, candidate_names, baseline)
            if signal is None:
                continue

            self._transition(SessionState.RUNNING)
            result = DetectionResult(
                app_id=app_id,
                signal=signal,
                matched_process_ids=tuple(pids),
                candidate_names=candidate_names,
            )
            logger.info(
                f"检测到 AppID {app_id} 已启动，信号: {signal.value}，PID: {list(pids) or '无'}，"
                f"用时 {elapsed:.1f} 秒"
            )
            return DetectionOutcome(state=self.state, result=result, elapsed_seconds=elapsed)

        self._transition(SessionState.TIMED_OUT)
        error = DetectionTimeout(app_id, timeout)
        logger.warning(str(error))
        return DetectionOutcome(state=self.state, result=None, elapsed_seconds=loop.elapsed, error=error)

    def _evaluate(self, app_id, candidate_names, baseline):
        """
        单次轮询，三种信号同步依次检查

        Returns:
            tuple: (DetectionSignal or None, list[int])
        """
        if self.run_flag.is_running(app_id):
            return DetectionSignal.REGISTRY_FLAG, []

        processes = self.process_table.snapshot()
        new_processes = [p for p in processes if p.pid not in baseline]

        for name in candidate_names:
            for proc in new_processes:
                if proc.stem == name:
                    return DetectionSignal.KNOWN_EXECUTABLE_MATCH, [proc.pid]

        for proc in new_processes:
            if proc.has_window and not self.is_denied(proc.name):
                return DetectionSignal.WINDOW_HANDLE_HEURISTIC, [proc.pid]

        return None, []

    def is_denied(self, process_name):
        stem = (process_name or "").lower()
        if stem.endswith(".exe"):
            stem = stem[:-4]
        return any(fnmatch.fnmatchcase(stem, p) for p in self.deny_patterns)

    def _transition(self, new_state):
        if new_state not in STATE_TRANSITIONS[self.state]:
            raise InvalidStateTransition(f"{self.state.value} -> {new_state.value}")
        logger.debug(f"检测状态: {self.state.value} -> {new_state.value}")
        self.state = new_state
