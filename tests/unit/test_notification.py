"""
Unit tests for the notification queue thread.
"""

import queue

import pytest

from models.session import ProcessStats, SessionSummary
from utils import notification
from utils.notification import create_notification_thread, format_summary, stop_notification_thread


@pytest.fixture
def sent(monkeypatch):
    messages = []
    monkeypatch.setattr(notification, "send_notification",
                        lambda title, message, silent=True: messages.append(message))
    return messages


class TestStopNotificationThread:
    def test_pending_message_sent_before_stop(self, sent):
        message_queue = queue.Queue()
        thread, stop_event = create_notification_thread(message_queue)
        message_queue.put("AppID 70 已退出")

        drained = stop_notification_thread(thread, stop_event, message_queue)

        assert drained
        assert sent == ["AppID 70 已退出"]
        assert not thread.is_alive()

    def test_send_failure_does_not_block_stop(self, monkeypatch):
        def fail(title, message, silent=True):
            raise RuntimeError("toast unavailable")

        monkeypatch.setattr(notification, "send_notification", fail)
        message_queue = queue.Queue()
        thread, stop_event = create_notification_thread(message_queue)
        message_queue.put("first")
        message_queue.put("second")

        assert stop_notification_thread(thread, stop_event, message_queue)

    def test_stopped_thread_leaves_queue_undrained(self, sent):
        message_queue = queue.Queue()
        thread, stop_event = create_notification_thread(message_queue)
        stop_event.set()
        thread.join(timeout=2)
        message_queue.put("late")

        assert not stop_notification_thread(thread, stop_event, message_queue, timeout=0.2)
        assert sent == []


class TestFormatSummary:
    def test_duration_and_peak_memory(self):
        summary = SessionSummary(
            duration_seconds=3725,
            per_process_stats=[
                ProcessStats(name="Game.exe", pid=1, peak_memory_bytes=512 * 1024 * 1024),
                ProcessStats(name="Worker.exe", pid=2),
            ],
        )

        text = format_summary(summary)

        assert text.splitlines() == [
            "会话时长 1小时2分5秒",
            "Game.exe: 峰值内存 512 MB",
            "Worker.exe: 统计不可用",
        ]
