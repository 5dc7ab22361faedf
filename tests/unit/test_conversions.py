# tests/unit/test_conversions.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from chatbridge.core.errors import ProviderClientError
from chatbridge.core.types import Conversation, ConversationRole, Tool
from chatbridge.providers.conversions import (
    RATIONALE_DESCRIPTION,
    SUGGESTION_DESCRIPTION,
    SUGGESTIONS_DESCRIPTION,
    convert_conversations,
    convert_tools,
)


def test_convert_tools_injects_rationale_and_suggestions():
    tools = [Tool("search", "Search the web"), Tool("open_file", "Open a file"), Tool("noop")]
    schemas = convert_tools(tools)

    assert len(schemas) == 3
    for tool, schema in zip(tools, schemas):
        assert schema["type"] == "function"
        fn = schema["function"]
        assert fn["name"] == tool.name
        assert fn["description"] == tool.description
        params = fn["parameters"]
        assert params["type"] == "object"
        assert params["required"] == ["rationale", "suggestions"]
        assert set(params["properties"]) == {"rationale", "suggestions"}
        assert params["properties"]["rationale"]["type"] == "string"
        assert params["properties"]["suggestions"]["type"] == "array"
        assert params["properties"]["suggestions"]["items"]["type"] == "string"
        assert params["properties"]["rationale"]["description"] == RATIONALE_DESCRIPTION
        assert params["properties"]["suggestions"]["description"] == SUGGESTIONS_DESCRIPTION
        assert params["properties"]["suggestions"]["items"]["description"] == SUGGESTION_DESCRIPTION


def test_convert_tools_empty():
    assert convert_tools([]) == []


def test_schemas_are_independent_objects():
    a, b = convert_tools([Tool("a"), Tool("b")])
    a["function"]["parameters"]["required"].append("extra")
    assert b["function"]["parameters"]["required"] == ["rationale", "suggestions"]


def test_convert_conversations_keeps_order_and_drops_unknown_roles(caplog):
    history = [
        Conversation(ConversationRole.SYSTEM, "be nice"),
        Conversation(ConversationRole.USER, "hi"),
        Conversation("assistant", "hello"),
        Conversation("tool", "{}"),
        Conversation("user", "bye"),
    ]
    with caplog.at_level("WARNING"):
        out = convert_conversations(history)

    assert out == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
        {"role": "user", "content": "bye"},
    ]
    assert "unsupported role" in caplog.text


def test_convert_conversations_strict_rejects_unknown_role():
    with pytest.raises(ProviderClientError):
        convert_conversations([Conversation("user", "ok"), Conversation("narrator", "x")], strict=True)


def test_convert_conversations_empty():
    assert convert_conversations([]) == []
