#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
配置模块
"""

# 应用程序基本信息
APP_INFO = {
    "name": "Steam-Session-Watch",            # 应用名称
    "version": "1.0.0",                       # 版本号
    "description": "Steam 游戏会话启动与退出检测",  # 应用描述
}

# 用户默认配置
DEFAULT_CONFIG = {
    "notifications": {
        "enabled": False                      # 通知默认关闭
    },
    "logging": {
        "retention_days": 7,                  # 日志保留天数
        "rotation": "1 day",                  # 日志轮转周期
        "debug_mode": False                   # 调试模式默认关闭
    },
    "library": {
        "steam_root": "",                     # Steam 根目录，留空自动查找
        "uri_scheme": "steam"                 # 启动 URI 协议名
    },
    "ranker": {
        "max_depth": 3,                       # 候选主程序扫描深度
        "detection_limit": 5,                 # 启动检测使用的候选数量
        "display_limit": 10,                  # 展示使用的候选数量
        "extensions": [".exe"],               # 可执行文件扩展名
        "exclude_patterns": []                # 额外排除的文件名通配符，追加到内置列表
    },
    "detection": {
        "timeout": 30,                        # 启动检测超时（秒）
        "poll_interval": 1.0,                 # 启动检测轮询间隔（秒）
        "window_deny_patterns": []            # 窗口检测排除的进程名通配符，留空使用内置列表
    },
    "monitor": {
        "poll_interval": 5.0,                 # 退出监控轮询间隔（秒）
        "stats_interval": 30,                 # 资源快照间隔（秒）
        "max_duration": 0                     # 监控时长上限（秒），0 表示不限
    }
}

# 系统配置
SYSTEM_CONFIG = {
    "config_dir_name": ".steam-session-watch",  # 配置目录名称
    "log_dir_name": "logs",                     # 日志目录名称
    "config_file_name": "config.yaml",          # 配置文件名称
    "config_root": None,                        # 配置目录所在位置，None 为用户主目录
}
