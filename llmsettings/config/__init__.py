# -*- coding: utf-8 -*-
from .config import ClientConfig
from .utils import get_config_path, load_config, save_config

__all__ = [
    "ClientConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
