#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Steam-Session-Watch 主程序入口

用法: main.py <AppID> [-- 启动参数]
启动游戏并阻塞直到游戏退出，供串流主机等调用方等待会话结束。
"""

import signal
import sys

from config import ConfigManager, APP_INFO
from core.candidate_ranker import ExecutableCandidateRanker
from core.exceptions import LaunchError, LibraryNotFound
from core.library_index import LibraryIndex
from core.poll_loop import CancellationToken
from core.process_monitor import SessionMonitor
from core.session_detector import SessionDetector
from utils import (
    logger,
    setup_logger,
    create_notification_thread,
    find_steam_root,
    format_summary,
    launch_via_uri,
    stop_notification_thread,
)


EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_NOT_DETECTED = 3


def run_session(app_id, config_manager, launch_options=None, cancel_token=None, monitor=None):
    """
    启动游戏并等待会话结束

    Args:
        app_id (int): 游戏AppID
        config_manager (ConfigManager): 配置管理器
        launch_options (str, optional): 启动参数
        cancel_token (CancellationToken, optional): 监控阶段的取消令牌
        monitor (SessionMonitor, optional): 会话监控器

    Returns:
        (DetectionOutcome, SessionSummary or None): 未检测到启动时汇总为None

    Raises:
        LibraryNotFound: Steam 根目录无效
        LaunchError: 系统拒绝启动
    """
    context = config_manager.build_session_context()
    steam_root = context.steam_root or find_steam_root()

    game = LibraryIndex(steam_root).find(app_id)
    if not context.steam_root:
        # 自动找到的根目录有效，写回配置
        config_manager.steam_root = steam_root
        if config_manager.save_config():
            logger.info(f"已记录 Steam 根目录: {steam_root}")
    ranker = ExecutableCandidateRanker.from_context(context)
    if game is None:
        logger.warning(f"AppID {app_id} 未在本地游戏库中找到，仅使用运行标志与窗口检测")
        candidates = []
    else:
        logger.info(f"游戏: {game.name} ({game.install_path})")
        candidates = ranker.rank_for_detection(game)

    detector = SessionDetector(context)
    baseline = detector.capture_baseline()
    launch_via_uri(app_id, launch_options, context.uri_scheme)

    outcome = detector.detect_start(app_id, candidates, baseline)
    if outcome.timed_out:
        return outcome, None

    monitor = monitor or SessionMonitor(context, show_notifications=config_manager.show_notifications)
    summary = monitor.monitor_until_exit(outcome.result, cancel_token=cancel_token)
    return outcome, summary


def _parse_args(argv):
    """
    解析命令行参数

    Returns:
        (int or None, str or None): AppID 与启动参数
    """
    launch_options = None
    if "--" in argv:
        split = argv.index("--")
        launch_options = " ".join(argv[split + 1:]) or None
        argv = argv[:split]
    positional = [a for a in argv if not a.startswith("-")]
    if len(positional) != 1 or not positional[0].isdigit():
        return None, None
    return int(positional[0]), launch_options


def main(argv=None, custom_default_config=None, custom_system_config=None):
    """
    主程序入口函数

    Args:
        argv (list, optional): 命令行参数，默认 sys.argv[1:]
        custom_default_config (dict, optional): 自定义默认配置，用于覆盖默认值
        custom_system_config (dict, optional): 自定义系统配置，用于覆盖默认值

    Returns:
        int: 退出码
    """
    argv = sys.argv[1:] if argv is None else argv
    app_id, launch_options = _parse_args(argv)
    if app_id is None:
        print(f"用法: {APP_INFO['name']} <AppID> [-- 启动参数]", file=sys.stderr)
        return EXIT_USAGE

    # 创建配置管理器
    config_manager = ConfigManager(
        custom_default_config=custom_default_config,
        custom_system_config=custom_system_config,
    )

    # 配置日志系统
    setup_logger(
        config_manager.log_dir,
        config_manager.log_retention_days,
        config_manager.log_rotation,
        config_manager.debug_mode,
    )
    logger.debug(f"🟩 {config_manager.get_app_name()} {config_manager.get_app_version()} 已启动")

    context = config_manager.build_session_context()
    monitor = SessionMonitor(context, show_notifications=config_manager.show_notifications)
    notification_thread_obj, stop_event = create_notification_thread(monitor.message_queue)

    # 第一次 Ctrl+C 取消监控，第二次直接中断
    cancel_token = CancellationToken()

    def _on_interrupt(signum, frame):
        if cancel_token.cancelled:
            raise KeyboardInterrupt
        logger.warning("收到中断信号，正在停止监控...")
        cancel_token.cancel()

    previous_handler = signal.signal(signal.SIGINT, _on_interrupt)
    try:
        outcome, summary = run_session(app_id, config_manager, launch_options, cancel_token, monitor)
    except (LibraryNotFound, LaunchError) as e:
        logger.error(str(e))
        return EXIT_FATAL
    except KeyboardInterrupt:
        return EXIT_FATAL
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        # 发送完剩余通知后停止通知线程
        stop_notification_thread(notification_thread_obj, stop_event, monitor.message_queue)
        logger.debug(f"🔴 {config_manager.get_app_name()} 已终止")

    if summary is None:
        logger.warning(f"未能确认 AppID {app_id} 已启动")
        return EXIT_NOT_DETECTED

    logger.info(format_summary(summary))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
