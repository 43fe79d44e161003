# -*- coding: utf-8 -*-
"""Interactive chat-test session against one provider."""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel

from ..errors import (
    ChatSessionBusyError,
    InvalidConfigError,
    ProviderNotFoundError,
    SettingsError,
)
from .facade import SettingsFacade

logger = logging.getLogger(__name__)


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatState(str, Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"


class ChatSession:
    """Ordered turns of one chat dialog; never persisted or shared.

    One request may be outstanding at a time. A reply appends exactly one
    assistant turn; a failure appends nothing, is kept in ``last_error`` and
    re-raised.
    """

    def __init__(
        self,
        facade: SettingsFacade,
        provider_id: str,
        model: Optional[str] = None,
    ):
        self._facade = facade
        self.provider_id = provider_id
        self.model = model
        self.state = ChatState.IDLE
        self.last_error: Optional[str] = None
        self._turns: List[ChatTurn] = []
        self._closed = False

    @property
    def turns(self) -> Tuple[ChatTurn, ...]:
        return tuple(self._turns)

    @property
    def busy(self) -> bool:
        return self.state == ChatState.AWAITING_REPLY

    def _resolve_model(self) -> Optional[str]:
        provider = self._facade.get_provider(self.provider_id)
        if provider is None:
            raise ProviderNotFoundError(self.provider_id)
        if self.model:
            return self.model
        return provider.models[0] if provider.models else None

    async def submit(self, text: str) -> str:
        if self._closed:
            raise InvalidConfigError("Chat session is closed")
        if self.busy:
            raise ChatSessionBusyError("A reply is still pending")
        message = text.strip()
        if not message:
            raise InvalidConfigError("Message must not be empty")
        model = self._resolve_model()

        self._turns.append(ChatTurn(role="user", content=message))
        self.state = ChatState.AWAITING_REPLY
        self.last_error = None
        try:
            reply = await self._facade.chat(self.provider_id, message, model)
        except SettingsError as exc:
            self.last_error = str(exc)
            logger.warning("Chat with %s failed: %s", self.provider_id, exc)
            raise
        finally:
            self.state = ChatState.IDLE

        if not self._closed:
            self._turns.append(ChatTurn(role="assistant", content=reply))
        return reply

    def close(self) -> None:
        """Discard every turn; the session cannot be reused."""
        self._turns.clear()
        self._closed = True
        self.last_error = None
