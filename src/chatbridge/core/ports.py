from __future__ import annotations
from typing import Iterator, List, Optional, Protocol, Sequence

from .context import Context
from .types import ChatOptions, Conversation, Model


class ChatStream(Protocol):
    """
    Read side of one generation. Byte-oriented: a chunk is whatever was
    buffered when receive() ran, not a message or character boundary.
    """

    def receive(self, ctx: Optional[Context] = None) -> bytes:
        """
        Block for up to 2048 bytes. Returns b"" at end-of-stream and keeps
        returning b"" afterwards. Raises the producer's error once buffered
        bytes are drained, and keeps raising it afterwards.
        """
        ...

    def close(self) -> None:
        ...

    def __iter__(self) -> Iterator[bytes]:
        ...


class Provider(Protocol):
    """
    Interface callers use to talk to any generation backend.
    """

    def chat_stream(
        self,
        ctx: Context,
        model: Model,
        conversations: Sequence[Conversation],
        options: Optional[ChatOptions] = None,
    ) -> ChatStream:
        """
        Starts generation in the background and returns immediately.
        Raises ProviderClientError (and starts nothing) if the client cannot be built.
        """
        ...

    def models(self, ctx: Context) -> List[Model]:
        """Active models only."""
        ...

    def ping(self, ctx: Context) -> None:
        """Raises on transport/HTTP/auth failure."""
        ...
