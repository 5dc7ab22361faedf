from __future__ import annotations
import codecs
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional
import typer

from .bootstrap import build_app
from .core.context import Context
from .core.errors import ProviderError, StreamCancelledError
from .core.types import ChatOptions, Conversation, ConversationRole, Model, Tool

app = typer.Typer(add_completion=False)

DEFAULT_CONFIG = Path("config/default.yaml")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")):
    level = logging.DEBUG if verbose else os.getenv("CHATBRIDGE_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s", stream=sys.stderr)


def _context(timeout: Optional[float]) -> Context:
    return Context.with_timeout(timeout) if timeout else Context.background()


def _parse_tool(value: str) -> Tool:
    name, _, description = value.partition(":")
    if not name.strip():
        raise typer.BadParameter(f"Invalid tool '{value}' (expected NAME:DESCRIPTION)")
    return Tool(name=name.strip(), description=description.strip())


@app.command()
def models(config: Path = DEFAULT_CONFIG):
    """List active models of the configured provider."""
    ctx = build_app(config)
    try:
        for m in ctx["provider"].models(_context(ctx["stream_timeout"])):
            print(m.name)
    except ProviderError as e:
        print(f"error: {e}", file=sys.stderr)
        raise typer.Exit(code=1)


@app.command()
def ping(config: Path = DEFAULT_CONFIG):
    """Check the configured provider is reachable and accepts the credentials."""
    ctx = build_app(config)
    try:
        ctx["provider"].ping(_context(ctx["stream_timeout"]))
    except ProviderError as e:
        print(f"error: {e}", file=sys.stderr)
        raise typer.Exit(code=1)
    print("ok")


@app.command()
def chat(
    prompt: str,
    config: Path = DEFAULT_CONFIG,
    model: Optional[str] = typer.Option(None, help="Override the configured model."),
    tool: List[str] = typer.Option([], help="Tool offered to the model, as NAME:DESCRIPTION."),
):
    """Send one prompt and stream the reply to stdout."""
    ctx = build_app(config)
    target: Model = ctx["model"] if not model else Model(name=model, provider=ctx["model"].provider)
    options = ChatOptions(tools=[_parse_tool(t) for t in tool])
    run_ctx = _context(ctx["stream_timeout"])

    try:
        stream = ctx["provider"].chat_stream(
            run_ctx, target, [Conversation(role=ConversationRole.USER, text=prompt)], options
        )
    except ProviderError as e:
        print(f"error: {e}", file=sys.stderr)
        raise typer.Exit(code=1)

    # chunks are not aligned to character boundaries
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    with stream:
        try:
            for chunk in stream:
                sys.stdout.write(decoder.decode(chunk))
                sys.stdout.flush()
            print(decoder.decode(b"", final=True))
        except KeyboardInterrupt:
            run_ctx.cancel("interrupted")
            print("\n[stream interrupted]")
        except StreamCancelledError as e:
            print(f"\n[stream cancelled: {e}]")
            raise typer.Exit(code=1)
        except ProviderError as e:
            print(f"\nerror: {e}", file=sys.stderr)
            raise typer.Exit(code=1)
