# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from .. import __version__
from .routers import router

logger = logging.getLogger(__name__)


def create_app(providers_path: Optional[Path] = None) -> FastAPI:
    """Build the settings backend app.

    *providers_path* overrides the providers.json location; by default the
    file lives under the working directory.
    """
    app = FastAPI(title="llmsettings", version=__version__)
    app.state.providers_path = providers_path
    app.include_router(router)
    logger.debug("Settings backend created (store=%s)", providers_path)
    return app
