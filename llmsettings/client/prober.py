# -*- coding: utf-8 -*-
"""Connectivity probes against a provider/model pair."""

from __future__ import annotations

import logging
from collections import Counter
from typing import FrozenSet, Optional

from ..constant import DEFAULT_PROVIDER_TIMEOUT_MS
from ..providers import Provider, ProviderTestResult, probe_result_key
from .transport import SettingsTransport

logger = logging.getLogger(__name__)

# Slack added on top of the provider timeout so the backend can report a
# structured failure before the client gives up on the call.
_TIMEOUT_SLACK_SECONDS = 5.0


class ConnectivityProber:
    """Issues probes and tracks which keys have one outstanding.

    Probes for different keys (and overlapping probes for the same key) run
    concurrently; nothing is de-duplicated here.
    """

    def __init__(self, transport: SettingsTransport):
        self._transport = transport
        self._in_flight: Counter[str] = Counter()

    @property
    def in_flight(self) -> FrozenSet[str]:
        """Keys (``<provider_id>:<model|default>``) with a probe running."""
        return frozenset(k for k, n in self._in_flight.items() if n > 0)

    def is_testing(self, provider_id: str) -> bool:
        prefix = f"{provider_id}:"
        return any(key.startswith(prefix) for key in self.in_flight)

    async def probe(
        self,
        provider_id: str,
        model: Optional[str] = None,
        provider: Optional[Provider] = None,
    ) -> ProviderTestResult:
        """Run one probe. Raises RemoteCallError if the call is rejected."""
        key = probe_result_key(provider_id, model)
        timeout_ms = DEFAULT_PROVIDER_TIMEOUT_MS
        if provider is not None and provider.parameters.timeout_ms:
            timeout_ms = provider.parameters.timeout_ms

        self._in_flight[key] += 1
        try:
            result = await self._transport.test_provider(
                provider_id,
                model,
                timeout=timeout_ms / 1000.0 + _TIMEOUT_SLACK_SECONDS,
            )
        finally:
            self._in_flight[key] -= 1
            if self._in_flight[key] <= 0:
                del self._in_flight[key]

        logger.debug(
            "Probe %s finished: success=%s latency=%s",
            key,
            result.success,
            result.latency_ms,
        )
        return result
