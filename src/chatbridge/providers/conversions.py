"""
Translate backend-agnostic tools and history into chat-completions shapes.

Every converted tool gets the same parameter schema: a free-text
`rationale` and an array of `suggestions`, both required. Tool-specific
arguments are not carried over.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List

from chatbridge.core.errors import ProviderClientError
from chatbridge.core.types import Conversation, ConversationRole, Tool

logger = logging.getLogger(__name__)

RATIONALE_DESCRIPTION = "The rationale for choosing this function call with these parameters"
SUGGESTIONS_DESCRIPTION = "Follow-up prompts the user may want to send next"
SUGGESTION_DESCRIPTION = "A suggested prompt"

# Closed set of roles that reach the backend.
_ROLE_MAP: Dict[ConversationRole, str] = {
    ConversationRole.USER: "user",
    ConversationRole.AI: "assistant",
}


def _tool_parameters() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "rationale": {
                "type": "string",
                "description": RATIONALE_DESCRIPTION,
            },
            "suggestions": {
                "type": "array",
                "description": SUGGESTIONS_DESCRIPTION,
                "items": {"type": "string", "description": SUGGESTION_DESCRIPTION},
            },
        },
        "required": ["rationale", "suggestions"],
    }


def convert_tool(tool: Tool) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": _tool_parameters(),
        },
    }


def convert_tools(tools: Iterable[Tool]) -> List[Dict[str, Any]]:
    return [convert_tool(t) for t in tools or ()]


def _role_of(conversation: Conversation):
    try:
        return ConversationRole(conversation.role)
    except ValueError:
        return None


def convert_conversations(conversations: Iterable[Conversation], *, strict: bool = False) -> List[Dict[str, str]]:
    """
    Map user/assistant turns to chat messages, keeping their order.
    Any other role is skipped with a warning, or rejected when strict=True.
    """
    messages: List[Dict[str, str]] = []
    for i, conversation in enumerate(conversations or ()):
        role = _role_of(conversation)
        mapped = _ROLE_MAP.get(role) if role is not None else None
        if mapped is None:
            if strict:
                raise ProviderClientError(f"Unsupported conversation role '{conversation.role}' at index {i}")
            logger.warning("Skipping conversation %d with unsupported role %r", i, conversation.role)
            continue
        messages.append({"role": mapped, "content": conversation.text})
    return messages
