#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
日志模块
"""

import os
import sys
from loguru import logger


def setup_logger(log_dir, retention_days=7, rotation="1 day", debug_mode=False):
    """
    配置日志系统

    Args:
        log_dir (str): 日志目录
        retention_days (int): 日志保留天数
        rotation (str): 日志轮转周期
        debug_mode (bool): 是否输出调试日志

    Returns:
        logger: 已配置的 loguru logger
    """
    level = "DEBUG" if debug_mode else "INFO"

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )

    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
            logger.add(
                os.path.join(log_dir, "session_{time:YYYY-MM-DD}.log"),
                level=level,
                rotation=rotation,
                retention=f"{retention_days} days",
                encoding="utf-8",
                enqueue=True,
            )
        except Exception as e:
            logger.error(f"创建日志文件失败: {str(e)}")

    return logger


__all__ = ["logger", "setup_logger"]
