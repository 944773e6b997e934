#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
游戏会话监控核心模块

检测到启动后持续轮询直到游戏退出：
- 有匹配进程时按进程跟踪，全部进程消失即结束
- 仅由运行标志确认时按标志跟踪，标志清除即结束
"""

import queue
from loguru import logger

from core.exceptions import InvalidStateTransition, ProcessQueryError
from core.poll_loop import PollLoop
from core.process_table import ProcessTable
from models.session import (
    STATE_TRANSITIONS,
    ProcessStats,
    SessionContext,
    SessionState,
    SessionSummary,
)
from utils.system_utils import create_run_flag


# 进程启动时间误差容限（秒），超过视为 PID 被复用
START_TIME_TOLERANCE = 1.0


class TrackedProcess:
    """会话内被跟踪的进程"""

    def __init__(self, pid, name, start_time=None):
        self.pid = pid
        self.name = name
        self.start_time = start_time
        self.alive = True
        self.last_usage = None
        self.peak_memory = None

    def record(self, usage):
        self.last_usage = usage
        if usage.memory_bytes is not None:
            self.peak_memory = max(self.peak_memory or 0, usage.memory_bytes)

    def to_stats(self):
        usage = self.last_usage
        if usage is None:
            return ProcessStats(name=self.name, pid=self.pid)
        return ProcessStats(
            name=usage.name or self.name,
            pid=self.pid,
            runtime_seconds=usage.runtime_seconds,
            peak_memory_bytes=self.peak_memory if self.peak_memory is not None else usage.memory_bytes,
            cpu_time_seconds=usage.cpu_time_seconds,
        )


class SessionMonitor:
    """游戏会话监控类"""

    def __init__(self, context=None, process_table=None, run_flag=None, message_queue=None,
                 show_notifications=False, on_usage=None, clock=None, sleep=None):
        """
        初始化会话监控器

        Args:
            context (SessionContext, optional): 会话上下文
            process_table (ProcessTable, optional): 进程表
            run_flag (RunFlag, optional): 运行标志读取器
            message_queue (queue.Queue, optional): 通知消息队列
            show_notifications (bool): 是否推送通知消息
            on_usage (callable, optional): 定期资源快照回调，参数为 (已用时间, list[ProcessUsage])
            clock (callable, optional): 单调时钟
            sleep (callable, optional): 休眠函数
        """
        self.context = context or SessionContext()
        self.process_table = process_table or ProcessTable(detect_windows=False)
        self.run_flag = run_flag or create_run_flag()
        self.message_queue = message_queue if message_queue is not None else queue.Queue()
        self.show_notifications = show_notifications
        self.on_usage = on_usage
        self._clock = clock
        self._sleep = sleep
        self.state = SessionState.IDLE

    def add_message(self, message):
        """
        添加消息到队列

        Args:
            message (str): 消息内容
        """
        if self.show_notifications:
            self.message_queue.put(message)

    def monitor_until_exit(self, result, poll_interval=None, cancel_token=None, max_duration=None):
        """
        阻塞直到游戏退出

        Args:
            result (DetectionResult): 启动检测结果
            poll_interval (float, optional): 轮询间隔（秒），默认取上下文配置
            cancel_token (CancellationToken, optional): 外部取消令牌，每次轮询检查
            max_duration (float, optional): 监控时长上限（秒），默认取上下文配置，None 表示不限

        Returns:
            SessionSummary: 会话汇总
        """
        poll_interval = self.context.monitor_poll_interval if poll_interval is None else poll_interval
        if max_duration is None:
            max_duration = self.context.monitor_max_duration
        stats_interval = self.context.stats_interval
        tracking = "process" if result.process_tracked else "flag"

        # 会话已结束，不再阻塞
        if self.state.is_terminal:
            logger.debug(f"AppID {result.app_id} 会话已处于 {self.state.value} 状态，直接返回")
            return SessionSummary(duration_seconds=0.0, tracking=tracking)

        # 检测结果即代表已越过等待阶段
        if self.state == SessionState.IDLE:
            self._transition(SessionState.AWAITING_START)
        if self.state != SessionState.RUNNING:
            self._transition(SessionState.RUNNING)
        tracked = {}
        if result.process_tracked:
            for pid in result.matched_process_ids:
                snap = self.process_table.get(pid)
                if snap is None:
                    proc = TrackedProcess(pid, str(pid))
                    proc.alive = False
                else:
                    proc = TrackedProcess(pid, snap.name, snap.start_time)
                tracked[pid] = proc

        logger.info(f"开始监控 AppID {result.app_id}，跟踪方式: {tracking}")
        self.add_message(f"AppID {result.app_id} 已启动，开始监控")

        exited = False
        next_report = stats_interval
        loop = PollLoop(poll_interval, timeout=max_duration, cancel_token=cancel_token,
                        clock=self._clock, sleep=self._sleep)
        for _, elapsed in loop.ticks():
            if result.process_tracked:
                alive = self._refresh_tracked(tracked)
            else:
                alive = self.run_flag.is_running(result.app_id)
                if alive:
                    self._refresh_flag_processes(tracked, result.candidate_names)

            if not alive:
                exited = True
                break

            if stats_interval and elapsed >= next_report:
                self._emit_usage(tracked, elapsed)
                while next_report <= elapsed:
                    next_report += stats_interval

        duration = loop.elapsed
        if exited:
            self._transition(SessionState.EXITED)
            logger.info(f"AppID {result.app_id} 已退出，会话时长 {duration:.0f} 秒")
            self.add_message(f"AppID {result.app_id} 已退出")
        else:
            logger.warning(f"AppID {result.app_id} 监控已取消，游戏可能仍在运行")

        return SessionSummary(
            duration_seconds=duration,
            per_process_stats=self._final_stats(tracked),
            tracking=tracking,
            cancelled=not exited,
        )

    def _transition(self, new_state):
        if new_state not in STATE_TRANSITIONS[self.state]:
            raise InvalidStateTransition(f"{self.state.value} -> {new_state.value}")
        logger.debug(f"监控状态: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _refresh_tracked(self, tracked):
        """
        重新解析全部被跟踪的进程

        Returns:
            bool: 是否仍有进程存活
        """
        any_alive = False
        for proc in tracked.values():
            if not proc.alive:
                continue
            snap = self.process_table.get(proc.pid)
            if snap is None or self._reused(proc, snap):
                proc.alive = False
                logger.debug(f"进程已退出: {proc.name} (PID: {proc.pid})")
                continue
            any_alive = True
            self._sample(proc)
        return any_alive

    def _refresh_flag_processes(self, tracked, candidate_names):
        """按标志跟踪时，根据候选主程序名查找进程，仅用于统计"""
        if not candidate_names:
            return
        try:
            for snap in self.process_table.snapshot():
                if snap.stem in candidate_names and snap.pid not in tracked:
                    tracked[snap.pid] = TrackedProcess(snap.pid, snap.name, snap.start_time)
                    logger.debug(f"发现游戏进程: {snap.name} (PID: {snap.pid})")
        except Exception as e:
            logger.debug(f"查找游戏进程失败: {str(e)}")

        for proc in tracked.values():
            if proc.alive:
                proc.alive = self._sample(proc)

    def _sample(self, proc):
        try:
            proc.record(self.process_table.usage(proc.pid))
            return True
        except ProcessQueryError as e:
            logger.debug(f"读取进程资源失败: {str(e)}")
            return False

    @staticmethod
    def _reused(proc, snap):
        if proc.start_time is None or snap.start_time is None:
            return False
        return abs(snap.start_time - proc.start_time) > START_TIME_TOLERANCE

    def _emit_usage(self, tracked, elapsed):
        """定期资源快照，仅供参考，失败不影响退出判断"""
        try:
            readings = [p.last_usage for p in tracked.values() if p.alive and p.last_usage is not None]
            for usage in readings:
                memory = f"{usage.memory_bytes / 1024 / 1024:.0f} MB" if usage.memory_bytes is not None else "未知"
                cpu = f"{usage.cpu_time_seconds:.1f} 秒" if usage.cpu_time_seconds is not None else "未知"
                runtime = f"{usage.runtime_seconds:.0f} 秒" if usage.runtime_seconds is not None else "未知"
                logger.info(
                    f"[{elapsed:.0f}s] {usage.name} (PID: {usage.pid}) 运行 {runtime}，"
                    f"内存 {memory}，CPU时间 {cpu}"
                )
            if self.on_usage is not None:
                self.on_usage(elapsed, readings)
        except Exception as e:
            logger.debug(f"输出资源快照失败: {str(e)}")

    @staticmethod
    def _final_stats(tracked):
        stats = []
        for proc in tracked.values():
            try:
                stats.append(proc.to_stats())
            except Exception as e:
                logger.debug(f"汇总进程统计失败: {proc.name} - {str(e)}")
                stats.append(ProcessStats(name=proc.name, pid=proc.pid))
        return stats
