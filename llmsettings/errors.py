# -*- coding: utf-8 -*-
"""Error taxonomy shared by the client facade and the backend store."""

from __future__ import annotations

from typing import Optional


class SettingsError(Exception):
    """Base class for every error raised by llmsettings."""


class RemoteCallError(SettingsError):
    """The remote call was rejected, failed in transport or returned a
    payload that does not match the expected contract."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidConfigError(SettingsError):
    """A draft or patch failed validation before any remote call."""


class ProviderNotFoundError(SettingsError):
    def __init__(self, provider_id: str):
        super().__init__(f"Provider '{provider_id}' not found")
        self.provider_id = provider_id


class DuplicateProviderError(SettingsError):
    def __init__(self, provider_id: str):
        super().__init__(f"Provider '{provider_id}' already exists")
        self.provider_id = provider_id


class ChatSessionBusyError(SettingsError):
    """A chat turn was submitted while the previous one is still pending."""
