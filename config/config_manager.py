#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
配置管理模块
"""

import copy
import os
import yaml
from utils.logger import logger
from config.app_config import APP_INFO, DEFAULT_CONFIG, SYSTEM_CONFIG
from models.session import SessionContext


class ConfigManager:
    """配置管理类"""

    def __init__(self, custom_app_info=None, custom_default_config=None, custom_system_config=None):
        """
        初始化配置管理器

        Args:
            custom_app_info (dict, optional): 自定义应用信息，用于覆盖默认值
            custom_default_config (dict, optional): 自定义默认配置，用于覆盖默认值
            custom_system_config (dict, optional): 自定义系统配置，用于覆盖默认值
        """
        # 合并配置
        self.app_info = APP_INFO.copy()
        if custom_app_info:
            self.app_info.update(custom_app_info)

        self.default_config = copy.deepcopy(DEFAULT_CONFIG)
        if custom_default_config:
            self._deep_update(self.default_config, custom_default_config)

        self.system_config = SYSTEM_CONFIG.copy()
        if custom_system_config:
            self.system_config.update(custom_system_config)

        # 设置配置路径
        config_root = self.system_config.get("config_root") or os.path.expanduser("~")
        self.config_dir = os.path.join(config_root, self.system_config["config_dir_name"])
        self.log_dir = os.path.join(self.config_dir, self.system_config["log_dir_name"])
        self.config_file = os.path.join(self.config_dir, self.system_config["config_file_name"])

        # 使用 default_config 默认配置初始化
        self._apply_defaults()

        # 确保配置目录存在
        self._ensure_directories()

        # 加载配置文件
        self.load_config()

    def _deep_update(self, d, u):
        """
        递归更新嵌套字典

        Args:
            d (dict): 要更新的目标字典
            u (dict): 包含更新值的字典
        """
        for k, v in u.items():
            if isinstance(v, dict) and k in d and isinstance(d[k], dict):
                self._deep_update(d[k], v)
            else:
                d[k] = v

    def _apply_defaults(self):
        """从默认配置初始化全部设置"""
        defaults = self.default_config

        self.show_notifications = defaults["notifications"]["enabled"]

        self.log_retention_days = defaults["logging"]["retention_days"]
        self.log_rotation = defaults["logging"]["rotation"]
        self.debug_mode = defaults["logging"]["debug_mode"]

        self.steam_root = defaults["library"]["steam_root"]
        self.uri_scheme = defaults["library"]["uri_scheme"]

        self.ranker_max_depth = defaults["ranker"]["max_depth"]
        self.ranker_detection_limit = defaults["ranker"]["detection_limit"]
        self.ranker_display_limit = defaults["ranker"]["display_limit"]
        self.ranker_extensions = list(defaults["ranker"]["extensions"])
        self.ranker_exclude_patterns = list(defaults["ranker"]["exclude_patterns"])

        self.detect_timeout = defaults["detection"]["timeout"]
        self.detect_poll_interval = defaults["detection"]["poll_interval"]
        self.window_deny_patterns = list(defaults["detection"]["window_deny_patterns"])

        self.monitor_poll_interval = defaults["monitor"]["poll_interval"]
        self.monitor_stats_interval = defaults["monitor"]["stats_interval"]
        self.monitor_max_duration = defaults["monitor"]["max_duration"]

    def _ensure_directories(self):
        """确保配置和日志目录存在"""
        for path in (self.config_dir, self.log_dir):
            if not os.path.exists(path):
                try:
                    os.makedirs(path)
                    logger.debug(f"已创建目录: {path}")
                except Exception as e:
                    logger.error(f"创建目录失败: {path} - {str(e)}")

    def load_config(self):
        """
        加载配置文件

        Returns:
            bool: 是否加载成功
        """
        # 如果配置文件不存在，则创建默认配置文件
        if not os.path.exists(self.config_file):
            logger.debug("配置文件不存在，将创建默认配置文件")
            self._create_default_config()
            return True

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)

            # 如果配置文件为空或无效，使用默认配置
            if not isinstance(config_data, dict):
                config_data = self.default_config
                logger.warning("配置文件为空或无效，将使用默认配置")

            # 读取通知设置
            if "enabled" in config_data.get("notifications", {}):
                self.show_notifications = bool(config_data["notifications"]["enabled"])
                logger.debug(f"已从配置文件加载通知设置: {self.show_notifications}")

            # 读取日志设置
            logging_cfg = config_data.get("logging", {})
            if "retention_days" in logging_cfg:
                self.log_retention_days = int(logging_cfg["retention_days"])
            if "rotation" in logging_cfg:
                self.log_rotation = logging_cfg["rotation"]
            if "debug_mode" in logging_cfg:
                self.debug_mode = bool(logging_cfg["debug_mode"])
                logger.debug(f"已从配置文件加载调试模式设置: {self.debug_mode}")

            # 读取游戏库设置
            library_cfg = config_data.get("library", {})
            if "steam_root" in library_cfg:
                self.steam_root = library_cfg["steam_root"] or ""
            if library_cfg.get("uri_scheme"):
                self.uri_scheme = str(library_cfg["uri_scheme"])

            # 读取候选主程序设置
            ranker_cfg = config_data.get("ranker", {})
            if "max_depth" in ranker_cfg:
                self.ranker_max_depth = max(0, int(ranker_cfg["max_depth"]))
            if "detection_limit" in ranker_cfg:
                self.ranker_detection_limit = max(1, int(ranker_cfg["detection_limit"]))
            if "display_limit" in ranker_cfg:
                self.ranker_display_limit = max(1, int(ranker_cfg["display_limit"]))
            if isinstance(ranker_cfg.get("extensions"), list) and ranker_cfg["extensions"]:
                self.ranker_extensions = [str(e).lower() for e in ranker_cfg["extensions"]]
            if isinstance(ranker_cfg.get("exclude_patterns"), list):
                self.ranker_exclude_patterns = [str(p) for p in ranker_cfg["exclude_patterns"]]

            # 读取启动检测设置
            detection_cfg = config_data.get("detection", {})
            if "timeout" in detection_cfg:
                self.detect_timeout = float(detection_cfg["timeout"])
                # 确保配置值合法
                if self.detect_timeout < 1:
                    self.detect_timeout = 1
            if "poll_interval" in detection_cfg:
                self.detect_poll_interval = float(detection_cfg["poll_interval"])
                if self.detect_poll_interval < 0.1:
                    self.detect_poll_interval = 0.1
            if isinstance(detection_cfg.get("window_deny_patterns"), list):
                self.window_deny_patterns = [str(p) for p in detection_cfg["window_deny_patterns"]]

            # 读取退出监控设置
            monitor_cfg = config_data.get("monitor", {})
            if "poll_interval" in monitor_cfg:
                self.monitor_poll_interval = float(monitor_cfg["poll_interval"])
                if self.monitor_poll_interval < 0.5:
                    self.monitor_poll_interval = 0.5
            if "stats_interval" in monitor_cfg:
                self.monitor_stats_interval = float(monitor_cfg["stats_interval"])
                if self.monitor_stats_interval < self.monitor_poll_interval:
                    self.monitor_stats_interval = self.monitor_poll_interval
            if "max_duration" in monitor_cfg:
                self.monitor_max_duration = max(0, float(monitor_cfg["max_duration"] or 0))

            logger.debug("配置文件加载成功")
            return True
        except Exception as e:
            logger.error(f"加载配置文件失败: {str(e)}")
            # 使用默认配置
            self._create_default_config()
            return False

    def _create_default_config(self):
        """创建默认配置文件"""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                yaml.dump(self.default_config, f, default_flow_style=False, allow_unicode=True)

            # 从默认配置中重新加载设置
            self._apply_defaults()
            logger.debug("已创建并加载默认配置")
        except Exception as e:
            logger.error(f"创建默认配置文件失败: {str(e)}")

    def save_config(self):
        """
        保存配置到文件

        Returns:
            bool: 保存是否成功
        """
        try:
            config_data = {
                "notifications": {"enabled": self.show_notifications},
                "logging": {
                    "retention_days": self.log_retention_days,
                    "rotation": self.log_rotation,
                    "debug_mode": self.debug_mode,
                },
                "library": {
                    "steam_root": self.steam_root,
                    "uri_scheme": self.uri_scheme,
                },
                "ranker": {
                    "max_depth": self.ranker_max_depth,
                    "detection_limit": self.ranker_detection_limit,
                    "display_limit": self.ranker_display_limit,
                    "extensions": self.ranker_extensions,
                    "exclude_patterns": self.ranker_exclude_patterns,
                },
                "detection": {
                    "timeout": self.detect_timeout,
                    "poll_interval": self.detect_poll_interval,
                    "window_deny_patterns": self.window_deny_patterns,
                },
                "monitor": {
                    "poll_interval": self.monitor_poll_interval,
                    "stats_interval": self.monitor_stats_interval,
                    "max_duration": self.monitor_max_duration,
                },
            }

            with open(self.config_file, "w", encoding="utf-8") as f:
                yaml.dump(config_data, f, default_flow_style=False, allow_unicode=True)

            logger.debug("配置已保存")
            return True
        except Exception as e:
            logger.error(f"保存配置文件失败: {str(e)}")
            return False

    def build_session_context(self, steam_root=None):
        """
        根据当前设置生成会话上下文

        Args:
            steam_root (str, optional): 覆盖配置中的 Steam 根目录

        Returns:
            SessionContext: 会话上下文
        """
        return SessionContext(
            steam_root=steam_root or self.steam_root or None,
            detect_timeout=float(self.detect_timeout),
            detect_poll_interval=float(self.detect_poll_interval),
            monitor_poll_interval=float(self.monitor_poll_interval),
            stats_interval=float(self.monitor_stats_interval),
            monitor_max_duration=float(self.monitor_max_duration) if self.monitor_max_duration else None,
            max_depth=int(self.ranker_max_depth),
            detection_limit=int(self.ranker_detection_limit),
            display_limit=int(self.ranker_display_limit),
            executable_extensions=tuple(self.ranker_extensions),
            exclude_patterns=tuple(self.ranker_exclude_patterns),
            window_deny_patterns=tuple(self.window_deny_patterns),
            uri_scheme=self.uri_scheme,
        )

    def get_app_name(self):
        """获取应用名称"""
        return self.app_info["name"]

    def get_app_version(self):
        """获取应用版本"""
        return self.app_info["version"]
