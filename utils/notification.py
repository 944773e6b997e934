#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
通知系统模块

会话开始与结束的消息通过队列交给后台线程发送，发送失败只记录日志。
"""

import os
import queue
import threading
import time
from utils.logger import logger


NOTIFICATION_APP_ID = "Steam-Session-Watch"


def send_notification(title, message, silent=True):
    """
    发送系统通知，目前仅支持 Windows

    Args:
        title (str): 通知标题
        message (str): 通知内容
        silent (bool, optional): 是否静音通知

    Returns:
        bool: 是否发送成功
    """
    if os.name != "nt":
        logger.info(f"{title}: {message}")
        return False

    try:
        from win11toast import notify

        audio = {'silent': 'true'} if silent else None
        notify(
            app_id=NOTIFICATION_APP_ID,
            title=title,
            body=message,
            audio=audio
        )
        return True
    except Exception as e:
        logger.error(f"发送通知失败: {str(e)}")
        return False


def format_summary(summary):
    """
    将会话汇总格式化为通知文本

    Args:
        summary (SessionSummary): 会话汇总

    Returns:
        str: 通知文本
    """
    minutes, seconds = divmod(int(summary.duration_seconds), 60)
    hours, minutes = divmod(minutes, 60)
    lines = [f"会话时长 {hours}小时{minutes}分{seconds}秒"]
    for stats in summary.per_process_stats:
        if stats.peak_memory_bytes is not None:
            lines.append(f"{stats.name}: 峰值内存 {stats.peak_memory_bytes / 1024 / 1024:.0f} MB")
        else:
            lines.append(f"{stats.name}: 统计不可用")
    return "\n".join(lines)


def notification_thread(message_queue, stop_event=None):
    """
    通知线程函数，从队列中获取消息并发送通知

    Args:
        message_queue (queue.Queue): 消息队列
        stop_event (threading.Event, optional): 停止事件
    """
    logger.debug("通知线程已启动")

    # 如果未指定停止事件，则创建一个新的
    if stop_event is None:
        stop_event = threading.Event()

    while not stop_event.is_set():
        try:
            # 获取消息，最多等待0.5秒
            message = message_queue.get(timeout=0.5)
        except queue.Empty:
            continue

        try:
            send_notification(title=f"{NOTIFICATION_APP_ID} 消息通知", message=message)
        except Exception as e:
            logger.error(f"处理通知失败: {str(e)}")
            time.sleep(0.1)
        finally:
            # 标记任务完成
            message_queue.task_done()

    logger.debug("通知线程已终止")


def create_notification_thread(message_queue):
    """
    创建并启动通知线程

    Args:
        message_queue (queue.Queue): 消息队列

    Returns:
        (threading.Thread, threading.Event): 线程对象和停止事件
    """
    stop_event = threading.Event()

    thread = threading.Thread(
        target=notification_thread,
        args=(message_queue, stop_event),
        daemon=True
    )
    thread.start()

    return thread, stop_event


def stop_notification_thread(thread, stop_event, message_queue, timeout=3.0):
    """
    等待队列中的消息发送完毕后停止通知线程

    Args:
        thread (threading.Thread): 通知线程
        stop_event (threading.Event): 停止事件
        message_queue (queue.Queue): 消息队列
        timeout (float, optional): 最长等待时间（秒）

    Returns:
        bool: 队列是否已清空
    """
    deadline = time.monotonic() + timeout
    while message_queue.unfinished_tasks and thread.is_alive() and time.monotonic() < deadline:
        time.sleep(0.05)

    drained = not message_queue.unfinished_tasks
    if not drained:
        logger.warning(f"通知队列仍有 {message_queue.unfinished_tasks} 条消息未发送")

    stop_event.set()
    thread.join(timeout=0.5)
    return drained
