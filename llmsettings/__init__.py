# -*- coding: utf-8 -*-
"""LLM provider and task configuration management."""

__version__ = "0.1.0"
