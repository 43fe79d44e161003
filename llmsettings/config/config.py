# -*- coding: utf-8 -*-
from pydantic import BaseModel, Field

from ..constant import DEFAULT_API_URL, DEFAULT_REQUEST_TIMEOUT


class ClientConfig(BaseModel):
    """Root client config (config.json)."""

    api_base_url: str = Field(
        default=DEFAULT_API_URL,
        description="Base URL of the settings backend",
    )
    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT,
        gt=0,
        description="Default timeout (seconds) for remote calls",
    )
    # When True, a completion is applied only if it belongs to the most
    # recently issued request for the same key.
    discard_stale_results: bool = False
