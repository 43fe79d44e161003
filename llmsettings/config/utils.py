# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from .config import ClientConfig
from ..constant import CONFIG_FILE, WORKING_DIR

logger = logging.getLogger(__name__)


def get_config_path() -> Path:
    return WORKING_DIR / CONFIG_FILE


def load_config(path: Optional[Path] = None) -> ClientConfig:
    """Load config.json; missing or unreadable files yield the defaults."""
    if path is None:
        path = get_config_path()
    if not path.is_file():
        return ClientConfig()
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
        return ClientConfig.model_validate(raw)
    except (json.JSONDecodeError, ValueError) as exc:
        logger.warning("Ignoring invalid config file %s: %s", path, exc)
        return ClientConfig()


def save_config(config: ClientConfig, path: Optional[Path] = None) -> None:
    if path is None:
        path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(
            config.model_dump(mode="json"),
            fh,
            indent=2,
            ensure_ascii=False,
        )
