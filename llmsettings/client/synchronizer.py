# -*- coding: utf-8 -*-
from __future__ import annotations

import logging

from ..providers import ModelsSyncResult
from .transport import SettingsTransport

logger = logging.getLogger(__name__)


class ModelSynchronizer:
    """Fetches the authoritative model catalog of a provider.

    The result replaces the provider's model set; the facade reconciles it
    through a full registry refresh, never by merging.
    """

    def __init__(self, transport: SettingsTransport):
        self._transport = transport

    async def sync(self, provider_id: str) -> ModelsSyncResult:
        result = await self._transport.sync_models(provider_id)
        if result.success:
            logger.info(
                "Synchronized %d models for %s",
                len(result.models),
                provider_id,
            )
        else:
            logger.warning(
                "Model sync for %s reported failure: %s",
                provider_id,
                result.message,
            )
        return result
