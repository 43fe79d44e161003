# -*- coding: utf-8 -*-
"""Remote-procedure boundary between the facade and the settings backend."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol, Type, TypeVar

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..constant import DEFAULT_API_URL, DEFAULT_REQUEST_TIMEOUT
from ..errors import RemoteCallError
from ..providers import (
    ChatReply,
    ModelsSyncResult,
    Provider,
    ProviderCreateRequest,
    ProviderTestResult,
    ProviderUpdateRequest,
    TaskConfig,
    TaskName,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SettingsTransport(Protocol):
    """Every call may raise :class:`RemoteCallError`."""

    async def aclose(self) -> None: ...

    async def list_providers(self) -> List[Provider]: ...

    async def get_provider(self, provider_id: str) -> Optional[Provider]: ...

    async def create_provider(
        self,
        draft: ProviderCreateRequest,
    ) -> Provider: ...

    async def update_provider(
        self,
        provider_id: str,
        patch: ProviderUpdateRequest,
    ) -> Optional[Provider]: ...

    async def delete_provider(self, provider_id: str) -> None: ...

    async def test_provider(
        self,
        provider_id: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ProviderTestResult: ...

    async def set_default_provider(self, provider_id: str) -> None: ...

    async def get_default_provider(self) -> Optional[Provider]: ...

    async def chat(
        self,
        provider_id: str,
        message: str,
        model: Optional[str] = None,
    ) -> str: ...

    async def sync_models(self, provider_id: str) -> ModelsSyncResult: ...

    async def get_task_config(
        self,
        task_name: TaskName,
    ) -> Optional[TaskConfig]: ...

    async def list_task_configs(self) -> List[TaskConfig]: ...

    async def update_task_config(self, config: TaskConfig) -> None: ...


class HttpSettingsTransport:
    """:class:`SettingsTransport` over the backend's REST API (httpx)."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpSettingsTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        timeout: Optional[float] = None,
        allow_404: bool = False,
    ) -> Optional[httpx.Response]:
        kwargs: dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise RemoteCallError(f"{method} {url} failed: {exc}") from exc

        if allow_404 and response.status_code == 404:
            return None
        if response.is_error:
            raise RemoteCallError(
                _error_detail(response),
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _parse(response: httpx.Response, model: Type[T]) -> T:
        try:
            return TypeAdapter(model).validate_python(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise RemoteCallError(
                f"Malformed response from {response.request.url}: {exc}",
                status_code=response.status_code,
            ) from exc

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    async def list_providers(self) -> List[Provider]:
        response = await self._request("GET", "/llm/providers")
        return self._parse(response, List[Provider])

    async def get_provider(self, provider_id: str) -> Optional[Provider]:
        response = await self._request(
            "GET",
            f"/llm/providers/{provider_id}",
            allow_404=True,
        )
        return None if response is None else self._parse(response, Provider)

    async def create_provider(self, draft: ProviderCreateRequest) -> Provider:
        response = await self._request(
            "POST",
            "/llm/providers",
            json=draft.model_dump(mode="json"),
        )
        return self._parse(response, Provider)

    async def update_provider(
        self,
        provider_id: str,
        patch: ProviderUpdateRequest,
    ) -> Optional[Provider]:
        response = await self._request(
            "PATCH",
            f"/llm/providers/{provider_id}",
            json=patch.model_dump(mode="json", exclude_none=True),
            allow_404=True,
        )
        return None if response is None else self._parse(response, Provider)

    async def delete_provider(self, provider_id: str) -> None:
        await self._request("DELETE", f"/llm/providers/{provider_id}")

    async def test_provider(
        self,
        provider_id: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ProviderTestResult:
        response = await self._request(
            "POST",
            f"/llm/providers/{provider_id}/test",
            json={"model": model},
            timeout=timeout,
        )
        return self._parse(response, ProviderTestResult)

    async def set_default_provider(self, provider_id: str) -> None:
        await self._request(
            "PUT",
            "/llm/providers/default",
            json={"provider_id": provider_id},
        )

    async def get_default_provider(self) -> Optional[Provider]:
        response = await self._request("GET", "/llm/providers/default")
        return self._parse(response, Optional[Provider])

    async def chat(
        self,
        provider_id: str,
        message: str,
        model: Optional[str] = None,
    ) -> str:
        response = await self._request(
            "POST",
            "/llm/chat",
            json={
                "provider_id": provider_id,
                "message": message,
                "model": model,
            },
        )
        return self._parse(response, ChatReply).content

    async def sync_models(self, provider_id: str) -> ModelsSyncResult:
        response = await self._request(
            "POST",
            f"/llm/providers/{provider_id}/sync",
        )
        return self._parse(response, ModelsSyncResult)

    # ------------------------------------------------------------------
    # Task configs
    # ------------------------------------------------------------------

    async def get_task_config(
        self,
        task_name: TaskName,
    ) -> Optional[TaskConfig]:
        response = await self._request(
            "GET",
            f"/llm/tasks/{TaskName(task_name).value}",
            allow_404=True,
        )
        return None if response is None else self._parse(response, TaskConfig)

    async def list_task_configs(self) -> List[TaskConfig]:
        response = await self._request("GET", "/llm/tasks")
        return self._parse(response, List[TaskConfig])

    async def update_task_config(self, config: TaskConfig) -> None:
        await self._request(
            "PUT",
            f"/llm/tasks/{config.task_name.value}",
            json=config.model_dump(mode="json"),
        )


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    if isinstance(payload, dict) and "detail" in payload:
        return str(payload["detail"])
    return f"HTTP {response.status_code}"
