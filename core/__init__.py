#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""核心模块：游戏库索引、候选主程序排序、启动检测与会话监控"""
