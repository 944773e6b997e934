#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""数据模型模块"""
