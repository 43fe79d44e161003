# -*- coding: utf-8 -*-
"""API routes for LLM providers, probes, model sync and chat."""

from __future__ import annotations

import logging
from pathlib import Path as FilePath
from typing import List, Optional

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request

from ...errors import InvalidConfigError, ProviderNotFoundError
from ...providers import (
    ChatReply,
    ChatRequest,
    ConfigExport,
    DefaultProviderRequest,
    ModelsSyncResult,
    Provider,
    ProviderCreateRequest,
    ProviderPreset,
    ProviderTestRequest,
    ProviderTestResult,
    ProviderUpdateRequest,
    list_presets,
)
from ...providers import clients, store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/llm", tags=["llm"])


def get_store_path(request: Request) -> Optional[FilePath]:
    """providers.json location configured on the app (None = default)."""
    return getattr(request.app.state, "providers_path", None)


def _require_provider(provider_id: str, path: Optional[FilePath]) -> Provider:
    provider = store.get_provider_record(provider_id, path)
    if provider is None:
        raise HTTPException(
            status_code=404,
            detail=f"Provider '{provider_id}' not found",
        )
    return provider


# ---------------------------------------------------------------------------
# Endpoints: provider CRUD
# ---------------------------------------------------------------------------


@router.get(
    "/providers",
    response_model=List[Provider],
    summary="List all providers",
)
async def list_all_providers(
    path: Optional[FilePath] = Depends(get_store_path),
) -> List[Provider]:
    return [store.to_public(p) for p in store.list_provider_records(path)]


@router.get(
    "/providers/presets",
    response_model=List[ProviderPreset],
    summary="List provider presets",
)
async def list_provider_presets() -> List[ProviderPreset]:
    return list_presets()


@router.get(
    "/providers/default",
    response_model=Optional[Provider],
    summary="Get the default provider",
)
async def get_default_provider(
    path: Optional[FilePath] = Depends(get_store_path),
) -> Optional[Provider]:
    provider = store.get_default_provider_record(path)
    return store.to_public(provider) if provider else None


@router.put(
    "/providers/default",
    response_model=Provider,
    summary="Set the default provider",
)
async def set_default_provider(
    body: DefaultProviderRequest = Body(...),
    path: Optional[FilePath] = Depends(get_store_path),
) -> Provider:
    try:
        provider = store.set_default_provider_id(body.provider_id, path)
    except ProviderNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return store.to_public(provider)


@router.post(
    "/providers",
    response_model=Provider,
    summary="Create a provider",
)
async def create_provider(
    body: ProviderCreateRequest = Body(...),
    path: Optional[FilePath] = Depends(get_store_path),
) -> Provider:
    try:
        provider = store.create_provider_record(body, path)
    except InvalidConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return store.to_public(provider)


@router.get(
    "/providers/{provider_id}",
    response_model=Provider,
    summary="Get a provider",
)
async def get_provider(
    provider_id: str = Path(..., description="Provider identifier"),
    path: Optional[FilePath] = Depends(get_store_path),
) -> Provider:
    return store.to_public(_require_provider(provider_id, path))


@router.patch(
    "/providers/{provider_id}",
    response_model=Provider,
    summary="Update a provider",
    description="Partial update. A blank api_key keeps the stored key.",
)
async def update_provider(
    provider_id: str = Path(..., description="Provider identifier"),
    body: ProviderUpdateRequest = Body(...),
    path: Optional[FilePath] = Depends(get_store_path),
) -> Provider:
    try:
        provider = store.update_provider_record(provider_id, body, path)
    except InvalidConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if provider is None:
        raise HTTPException(
            status_code=404,
            detail=f"Provider '{provider_id}' not found",
        )
    return store.to_public(provider)


@router.delete(
    "/providers/{provider_id}",
    status_code=204,
    summary="Delete a provider",
)
async def delete_provider(
    provider_id: str = Path(..., description="Provider identifier"),
    path: Optional[FilePath] = Depends(get_store_path),
) -> None:
    try:
        store.delete_provider_record(provider_id, path)
    except ProviderNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Endpoints: probe, model sync, chat
# ---------------------------------------------------------------------------


@router.post(
    "/providers/{provider_id}/test",
    response_model=ProviderTestResult,
    summary="Test provider connectivity",
)
async def test_provider(
    provider_id: str = Path(..., description="Provider identifier"),
    body: Optional[ProviderTestRequest] = Body(default=None),
    path: Optional[FilePath] = Depends(get_store_path),
) -> ProviderTestResult:
    provider = _require_provider(provider_id, path)
    model = body.model if body else None
    result = await clients.test_connection(provider, model)
    if result.success:
        logger.info("Connection test succeeded: %s", provider_id)
    else:
        logger.warning(
            "Connection test failed: %s - %s",
            provider_id,
            result.message,
        )
    return result


@router.post(
    "/providers/{provider_id}/sync",
    response_model=ModelsSyncResult,
    summary="Synchronize the provider's model list",
)
async def sync_models(
    provider_id: str = Path(..., description="Provider identifier"),
    path: Optional[FilePath] = Depends(get_store_path),
) -> ModelsSyncResult:
    provider = _require_provider(provider_id, path)
    try:
        models = await clients.list_models(provider)
    except (httpx.HTTPError, clients.ProviderCallError, ValueError) as exc:
        logger.error("Model sync failed for %s: %s", provider_id, exc)
        return ModelsSyncResult(success=False, message=str(exc))

    store.set_provider_models(provider_id, models, path)
    logger.info("Synchronized %d models for %s", len(models), provider_id)
    return ModelsSyncResult(
        success=True,
        models=models,
        message=f"Fetched {len(models)} models",
    )


@router.post("/chat", response_model=ChatReply, summary="One chat turn")
async def chat(
    body: ChatRequest = Body(...),
    path: Optional[FilePath] = Depends(get_store_path),
) -> ChatReply:
    provider = _require_provider(body.provider_id, path)
    try:
        content = await clients.chat(
            provider,
            [{"role": "user", "content": body.message}],
            body.model,
        )
    except (httpx.HTTPError, clients.ProviderCallError, ValueError) as exc:
        logger.error("Chat failed for %s: %s", body.provider_id, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return ChatReply(content=content)


@router.get("/export", response_model=ConfigExport, summary="Export config")
async def export_config(
    path: Optional[FilePath] = Depends(get_store_path),
) -> ConfigExport:
    return store.export_config(path)
