# -*- coding: utf-8 -*-
"""Client-side settings state, facade and remote boundary."""

from .chat_session import ChatSession, ChatState, ChatTurn
from .facade import SettingsFacade
from .prober import ConnectivityProber
from .state import (
    PROVIDERS,
    TASK_CONFIGS,
    TEST_RESULTS,
    RequestSequencer,
    SettingsState,
)
from .synchronizer import ModelSynchronizer
from .transport import HttpSettingsTransport, SettingsTransport

__all__ = [
    "ChatSession",
    "ChatState",
    "ChatTurn",
    "ConnectivityProber",
    "HttpSettingsTransport",
    "ModelSynchronizer",
    "PROVIDERS",
    "RequestSequencer",
    "SettingsFacade",
    "SettingsState",
    "SettingsTransport",
    "TASK_CONFIGS",
    "TEST_RESULTS",
]
