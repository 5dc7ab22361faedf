# src/chatbridge/providers/openai_compat.py
from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from openai import OpenAI

from chatbridge.core.context import Context
from chatbridge.core.errors import ProviderClientError, StreamCancelledError
from chatbridge.core.types import ChatOptions, ConnectionSettings, Conversation, Model
from chatbridge.providers import catalog
from chatbridge.providers.conversions import convert_conversations, convert_tools
from chatbridge.providers.errors import classify_exception
from chatbridge.streaming.bridge import BridgeChatStream, start_stream
from chatbridge.streaming.pipe import PipeWriter

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider:
    """
    Provider for any chat-completions compatible backend.
    - one OpenAI client per chat_stream call, built from the connection settings
    - generation runs on its own thread and streams raw text into a bounded pipe
    - models/ping hit GET {base_url}/models directly
    - SDK retries are disabled; retry policy belongs to the caller
    """

    provider_name = "openai-compatible"
    default_base_url = ""

    def __init__(self, settings: ConnectionSettings, *, http_client: Optional[httpx.Client] = None):
        self.settings = settings
        self.base_url = (settings.host or self.default_base_url).rstrip("/")
        self._http_client = http_client

    @classmethod
    def create(cls, settings: ConnectionSettings) -> "OpenAICompatibleProvider":
        return cls(settings)

    # ----- construction -----

    def _check_base_url(self) -> None:
        if not self.base_url:
            raise ProviderClientError(f"No base URL configured for '{self.provider_name}'")
        try:
            url = httpx.URL(self.base_url)
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            raise ProviderClientError(f"Invalid base URL '{self.base_url}': {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ProviderClientError(f"Invalid base URL '{self.base_url}' (expected http(s)://host/...)")

    def _build_client(self) -> OpenAI:
        self._check_base_url()
        if not self.settings.api_key:
            raise ProviderClientError(f"No API key for '{self.provider_name}'")
        try:
            return OpenAI(api_key=self.settings.api_key, base_url=self.base_url, max_retries=0)
        except Exception as e:
            raise ProviderClientError(str(e)) from e

    def _build_args(self, ctx: Context, model: Model, messages: List[Dict[str, Any]],
                    tools: List[Dict[str, Any]]) -> Dict[str, Any]:
        args: Dict[str, Any] = {
            "model": model.name,
            "messages": messages,
            "stream": True,
        }
        if tools:
            args["tools"] = tools
        remaining = ctx.remaining()
        if remaining is not None:
            args["timeout"] = remaining
        return args

    # ----- contract -----

    def chat_stream(
        self,
        ctx: Context,
        model: Model,
        conversations: Sequence[Conversation],
        options: Optional[ChatOptions] = None,
    ) -> BridgeChatStream:
        client = self._build_client()
        messages = convert_conversations(conversations)
        tools = convert_tools((options or ChatOptions()).tools)
        args = self._build_args(ctx, model, messages, tools)
        logger.debug("%s: chat stream model=%s messages=%d tools=%d",
                      self.provider_name, model.name, len(messages), len(tools))

        def produce(stream_ctx: Context, writer: PipeWriter) -> None:
            self._generate(stream_ctx, client, args, writer)

        return start_stream(ctx, self.provider_name, produce)

    def models(self, ctx: Context) -> List[Model]:
        self._check_base_url()
        return catalog.fetch_models(
            ctx, self.base_url, self.settings.api_key, self.provider_name,
            timeout=self.settings.timeout, client=self._http_client,
        )

    def ping(self, ctx: Context) -> None:
        self._check_base_url()
        catalog.ping(ctx, self.base_url, self.settings.api_key,
                     timeout=self.settings.timeout, client=self._http_client)

    # ----- generation -----

    def _generate(self, ctx: Context, client: OpenAI, args: Dict[str, Any], writer: PipeWriter) -> None:
        ctx.raise_if_done()

        # closing the client aborts a request still waiting for response headers
        def _abort_request(_ctx: Context) -> None:
            client.close()

        ctx.add_done_callback(_abort_request)
        try:
            stream = client.chat.completions.create(**args)
        except Exception as e:
            ctx.raise_if_done()
            raise classify_exception(e) from e
        finally:
            ctx.remove_done_callback(_abort_request)

        # closing the SDK stream aborts the pending HTTP read
        def _abort(_ctx: Context) -> None:
            stream.close()

        ctx.add_done_callback(_abort)
        tool_calls: Dict[int, Dict[str, Any]] = {}
        try:
            for chunk in stream:
                ctx.raise_if_done()
                try:
                    delta = chunk.choices[0].delta
                except (AttributeError, IndexError, TypeError):
                    continue
                if delta is None:
                    continue
                piece = getattr(delta, "content", None)
                if piece:
                    writer.write(piece.encode("utf-8"), ctx)
                for tc in getattr(delta, "tool_calls", None) or []:
                    _accumulate_tool_call(tool_calls, tc)
        except (StreamCancelledError, BrokenPipeError):
            raise
        except Exception as e:
            raise classify_exception(e) from e
        finally:
            ctx.remove_done_callback(_abort)

        ctx.raise_if_done()
        if tool_calls:
            calls = [tool_calls[i] for i in sorted(tool_calls)]
            writer.write(json.dumps(calls).encode("utf-8"), ctx)


def _accumulate_tool_call(acc: Dict[int, Dict[str, Any]], tc: Any) -> None:
    index = getattr(tc, "index", None)
    if index is None:
        index = len(acc)
    entry = acc.setdefault(index, {"id": "", "type": "function", "function": {"name": "", "arguments": ""}})
    if getattr(tc, "id", None):
        entry["id"] = tc.id
    fn = getattr(tc, "function", None)
    if fn is not None:
        if getattr(fn, "name", None):
            entry["function"]["name"] += fn.name
        if getattr(fn, "arguments", None):
            entry["function"]["arguments"] += fn.arguments


class GroqProvider(OpenAICompatibleProvider):
    provider_name = "groq"
    default_base_url = "https://api.groq.com/openai/v1"


class OpenAIProvider(OpenAICompatibleProvider):
    provider_name = "openai"
    default_base_url = "https://api.openai.com/v1"


class OpenRouterProvider(OpenAICompatibleProvider):
    provider_name = "openrouter"
    default_base_url = "https://openrouter.ai/api/v1"


class DeepSeekProvider(OpenAICompatibleProvider):
    provider_name = "deepseek"
    default_base_url = "https://api.deepseek.com/v1"
