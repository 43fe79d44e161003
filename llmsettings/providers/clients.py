# -*- coding: utf-8 -*-
"""Minimal async HTTP clients used by the backend to reach providers.

Only what the settings screens need: enumerate models, run one chat turn
and a connectivity test built on top of the model listing.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ..constant import (
    ANTHROPIC_API_VERSION,
    AZURE_DEFAULT_API_VERSION,
    DEFAULT_PROVIDER_TIMEOUT_MS,
)
from .models import LLMParameters, Provider, ProviderTestResult, ProviderType

logger = logging.getLogger(__name__)

# Parameters forwarded verbatim to OpenAI-compatible request bodies.
_OPENAI_BODY_PARAMS = (
    "temperature",
    "max_tokens",
    "top_p",
    "frequency_penalty",
    "presence_penalty",
)


class ProviderCallError(Exception):
    """A provider endpoint answered with an error or unusable payload."""


def provider_timeout(provider: Provider) -> float:
    """Timeout in seconds configured on the provider."""
    timeout_ms = provider.parameters.timeout_ms or DEFAULT_PROVIDER_TIMEOUT_MS
    return timeout_ms / 1000.0


def _headers(provider: Provider) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if provider.type == ProviderType.ANTHROPIC:
        headers["anthropic-version"] = ANTHROPIC_API_VERSION
        if provider.api_key:
            headers["x-api-key"] = provider.api_key
    elif provider.type == ProviderType.AZURE:
        if provider.api_key:
            headers["api-key"] = provider.api_key
    elif provider.api_key:
        headers["Authorization"] = f"Bearer {provider.api_key}"
    return headers


def _url(provider: Provider, suffix: str) -> str:
    return f"{provider.base_url.rstrip('/')}/{suffix.lstrip('/')}"


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    detail = response.text[:200]
    raise ProviderCallError(f"HTTP {response.status_code}: {detail}")


def _client(
    provider: Provider,
    client: Optional[httpx.AsyncClient],
) -> httpx.AsyncClient:
    if client is not None:
        return client
    return httpx.AsyncClient(timeout=provider_timeout(provider))


def _azure_deployments_url(provider: Provider) -> str:
    """``{resource}/openai/deployments`` for any Azure base URL shape."""
    base = provider.base_url.rstrip("/")
    root = base.split("/openai/", 1)[0] if "/openai/" in base else base
    if root.endswith("/openai"):
        root = root[: -len("/openai")]
    return f"{root}/openai/deployments"


async def list_models(
    provider: Provider,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> List[str]:
    """Enumerate models the provider currently serves.

    Azure lists its deployments instead of ``/models``.
    """
    params: Dict[str, str] = {}
    if provider.type == ProviderType.AZURE:
        url = _azure_deployments_url(provider)
        params["api-version"] = (
            provider.parameters.api_version or AZURE_DEFAULT_API_VERSION
        )
    else:
        url = _url(provider, "models")

    http = _client(provider, client)
    try:
        response = await http.get(
            url,
            params=params or None,
            headers=_headers(provider),
            timeout=provider_timeout(provider),
        )
        _raise_for_status(response)
        payload = response.json()
    finally:
        if client is None:
            await http.aclose()

    entries = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        raise ProviderCallError(f"Unexpected response from {url}")
    models = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = entry.get("id") or entry.get("model")
        if name:
            models.append(name)
    return models


def _build_body(
    provider: Provider,
    messages: List[Dict[str, str]],
    model: str,
    parameters: LLMParameters,
) -> Dict[str, Any]:
    if provider.type == ProviderType.ANTHROPIC:
        body: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": parameters.max_tokens or 1024,
        }
        for key in ("temperature", "top_p"):
            value = getattr(parameters, key)
            if value is not None:
                body[key] = value
        return body

    body = {"model": model, "messages": messages}
    for key in _OPENAI_BODY_PARAMS:
        value = getattr(parameters, key)
        if value is not None:
            body[key] = value
    return body


def _extract_content(provider: Provider, payload: Any) -> str:
    try:
        if provider.type == ProviderType.ANTHROPIC:
            return "".join(
                block.get("text", "")
                for block in payload["content"]
                if block.get("type") == "text"
            )
        return payload["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as exc:
        raise ProviderCallError(f"Unexpected chat response: {exc}") from exc


async def chat(
    provider: Provider,
    messages: List[Dict[str, str]],
    model: Optional[str] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Send one non-streaming chat request and return the reply text."""
    model = model or (provider.models[0] if provider.models else "")
    if not model:
        raise ProviderCallError(f"Provider '{provider.name}' has no model")

    parameters = provider.parameters
    body = _build_body(provider, messages, model, parameters)
    params: Dict[str, str] = {}
    if provider.type == ProviderType.ANTHROPIC:
        url = _url(provider, "messages")
    elif provider.type == ProviderType.AZURE:
        url = provider.base_url
        params["api-version"] = (
            parameters.api_version or AZURE_DEFAULT_API_VERSION
        )
    else:
        url = _url(provider, "chat/completions")

    http = _client(provider, client)
    try:
        response = await http.post(
            url,
            json=body,
            params=params or None,
            headers=_headers(provider),
            timeout=provider_timeout(provider),
        )
        _raise_for_status(response)
        payload = response.json()
    finally:
        if client is None:
            await http.aclose()
    return _extract_content(provider, payload)


async def test_connection(
    provider: Provider,
    model: Optional[str] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> ProviderTestResult:
    """Probe the provider by listing its models.

    Transport and provider errors become a failed result; they are never
    raised to the caller.
    """
    started = time.monotonic()

    def _elapsed() -> int:
        return int((time.monotonic() - started) * 1000)

    try:
        models = await list_models(provider, client=client)
    except (httpx.HTTPError, ProviderCallError, ValueError) as exc:
        logger.warning(
            "Connection test failed for %s: %s",
            provider.provider_id,
            exc,
        )
        return ProviderTestResult(
            success=False,
            message=f"Connection failed: {exc}",
            latency_ms=_elapsed(),
        )

    if model and models and model not in models:
        return ProviderTestResult(
            success=False,
            message=f"Model {model} is not available",
            latency_ms=_elapsed(),
            available_models=models,
        )
    return ProviderTestResult(
        success=True,
        message="Connection succeeded",
        latency_ms=_elapsed(),
        available_models=models,
    )
