from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from chatbridge.core.context import Context
from chatbridge.core.types import ChatOptions, ConnectionSettings, Conversation, Model
from chatbridge.providers.conversions import convert_conversations, convert_tools
from chatbridge.streaming.bridge import BridgeChatStream, start_stream
from chatbridge.streaming.pipe import PipeWriter

logger = logging.getLogger(__name__)

_LOREM_50 = (
    "Lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua Curabitur non nulla sit amet nisl "
    "tempor convallis quis ac lectus Phasellus viverra nulla ut metus varius laoreet "
    "Quisque rutrum Aenean imperdiet Etiam ultricies nisi vel augue Curabitur ullamcorper ultricies nisi"
).split()


class EchoProvider:
    """
    Offline stub that streams a fixed 50-word lorem ipsum through the same pipe
    the network providers use. One word per write, with a small delay to
    simulate tokens. No network, no credentials.
    """
    provider_name = "echo"
    model_name = "echo-lorem"

    def __init__(self, settings: Optional[ConnectionSettings] = None, token_delay: float = 0.0,
                 words: Optional[List[str]] = None):
        self.settings = settings or ConnectionSettings(name=self.provider_name)
        self.token_delay = float(token_delay)
        self.words = list(words) if words is not None else list(_LOREM_50)

    @classmethod
    def create(cls, settings: ConnectionSettings) -> "EchoProvider":
        return cls(settings)

    def chat_stream(
        self,
        ctx: Context,
        model: Model,
        conversations: Sequence[Conversation],
        options: Optional[ChatOptions] = None,
    ) -> BridgeChatStream:
        messages = convert_conversations(conversations)
        tools = convert_tools((options or ChatOptions()).tools)
        logger.debug("%s: chat stream model=%s messages=%d tools=%d",
                     self.provider_name, model.name, len(messages), len(tools))

        def produce(stream_ctx: Context, writer: PipeWriter) -> None:
            last_idx = len(self.words) - 1
            for i, w in enumerate(self.words):
                stream_ctx.raise_if_done()
                writer.write((w + ("" if i == last_idx else " ")).encode("utf-8"), stream_ctx)
                if self.token_delay > 0 and stream_ctx.wait(self.token_delay):
                    stream_ctx.raise_if_done()

        return start_stream(ctx, self.provider_name, produce)

    def models(self, ctx: Context) -> List[Model]:
        ctx.raise_if_done()
        return [Model(name=self.model_name, provider=self.provider_name)]

    def ping(self, ctx: Context) -> None:
        ctx.raise_if_done()
