#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
定时轮询循环，供启动检测与退出监控共用
"""

import threading
import time


class CancellationToken:
    """取消令牌，由外部线程或信号处理函数调用 cancel()"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self):
        return self._event.is_set()

    def wait(self, seconds):
        """
        可被取消打断的等待

        Returns:
            bool: 等待期间是否被取消
        """
        return self._event.wait(seconds)


class PollLoop:
    """
    单线程轮询循环

    每次迭代前检查取消令牌与截止时间，迭代之间休眠 interval 秒。
    休眠时间不会越过截止时间，因此超时发生在截止时间当刻或之后，不会提前。
    """

    def __init__(self, interval, timeout=None, cancel_token=None, clock=None, sleep=None):
        """
        Args:
            interval (float): 轮询间隔（秒）
            timeout (float, optional): 截止时间（秒），None 表示不限
            cancel_token (CancellationToken, optional): 取消令牌
            clock (callable, optional): 单调时钟，默认 time.monotonic
            sleep (callable, optional): 休眠函数，默认使用令牌等待或 time.sleep
        """
        if interval <= 0:
            raise ValueError("轮询间隔必须大于0")
        self.interval = interval
        self.timeout = timeout
        self.cancel_token = cancel_token
        self._clock = clock or time.monotonic
        if sleep is not None:
            self._sleep = sleep
        elif cancel_token is not None:
            self._sleep = cancel_token.wait
        else:
            self._sleep = time.sleep
        self._start = None
        self.timed_out = False
        self.cancelled = False

    @property
    def elapsed(self):
        if self._start is None:
            return 0.0
        return self._clock() - self._start

    def ticks(self):
        """
        逐次产生 (tick序号, 已用时间)

        调用方 break 即结束循环；生成器自然结束时，
        通过 timed_out / cancelled 属性区分原因。
        """
        self._start = self._clock()
        tick = 0
        while True:
            if self.cancel_token is not None and self.cancel_token.cancelled:
                self.cancelled = True
                return
            elapsed = self.elapsed
            if self.timeout is not None and elapsed >= self.timeout:
                self.timed_out = True
                return
            yield tick, elapsed
            tick += 1

            wait = self.interval
            if self.timeout is not None:
                wait = min(wait, max(0.0, self.timeout - self.elapsed))
            self._sleep(wait)
