from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List


class ConversationRole(str, Enum):
    USER = "user"
    AI = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class Model:
    name: str
    provider: str


@dataclass(frozen=True)
class Conversation:
    """One turn of chat history. Order in a list is chronological."""
    role: str
    text: str


@dataclass(frozen=True)
class Tool:
    """Abstract tool definition; carries no backend-specific schema."""
    name: str
    description: str = ""


@dataclass
class ChatOptions:
    tools: List[Tool] = field(default_factory=list)


@dataclass(frozen=True)
class ConnectionSettings:
    """
    Connection context for one provider instance.
    'host' overrides the backend's default base URL when non-empty.
    """
    name: str
    api_key: str = ""
    host: str = ""
    timeout: float = 30.0
