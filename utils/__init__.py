#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""工具类模块"""

from utils.logger import setup_logger, logger
from utils.notification import (
    send_notification,
    notification_thread,
    create_notification_thread,
    stop_notification_thread,
    format_summary,
)
from utils.system_utils import (
    RunFlag,
    RegistryRunFlag,
    VdfRunFlag,
    create_run_flag,
    find_steam_root,
    build_launch_uri,
    launch_via_uri,
)


__all__ = [
    "setup_logger",
    "logger",
    "send_notification",
    "notification_thread",
    "create_notification_thread",
    "stop_notification_thread",
    "format_summary",
    "RunFlag",
    "RegistryRunFlag",
    "VdfRunFlag",
    "create_run_flag",
    "find_steam_root",
    "build_launch_uri",
    "launch_via_uri",
]
