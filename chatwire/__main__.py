"""Interactive terminal client (`python -m chatwire`)."""

from __future__ import annotations

import sys
import asyncio
import argparse
import contextlib
from typing import Any

from chatwire.client import ChatTransport
from chatwire.state.pending import PendingRequest
from chatwire.config.transport import CHATWIRE_URL
from chatwire.protocol.files import FileAttachment
from chatwire.runtime.logging import configure_logging
from chatwire.errors import (
    RateLimitError,
    NotConnectedError,
    RequestTimeoutError,
    ConnectionClosedError,
    ConnectionFailedError,
)
from chatwire.events.types import (
    ToolCall,
    ToolResult,
    FileContent,
    RateLimited,
    StatusUpdate,
    PartialMessage,
    RequestExpired,
    ControlResponse,
    MessageComplete,
    FileListResponse,
    CommunicationError,
    FileUploadResponse,
    ConnectionStateChanged,
)

HELP = """Commands:
  /history        fetch conversation history
  /status         ask the server for session status
  /abort          abort the current response
  /clear          clear conversation history
  /files          list files
  /file <name>    fetch a file (add --b64 for base64 content)
  /upload <path>  upload a local file
  /quit           disconnect and exit
  anything else is sent as a user message"""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Interactive chat WebSocket client")
    p.add_argument("--url", default=CHATWIRE_URL, help="ws(s):// URL, http(s):// URL or host")
    p.add_argument("--reconnect-attempts", type=int, default=None)
    p.add_argument("--heartbeat-interval", type=float, default=None)
    p.add_argument("--log-level", default=None)
    return p.parse_args(argv)


class _Printer:
    """Prints streamed text incrementally; partials carry the full text so far."""

    def __init__(self) -> None:
        self._printed: dict[str, int] = {}

    def on_partial(self, event: PartialMessage) -> None:
        done = self._printed.get(event.stream_id, 0)
        if done == 0:
            sys.stdout.write("<< ")
        sys.stdout.write(event.text[done:])
        sys.stdout.flush()
        self._printed[event.stream_id] = len(event.text)

    def on_complete(self, event: MessageComplete) -> None:
        done = self._printed.pop(event.stream_id, 0)
        if done == 0:
            sys.stdout.write(f"<< {event.text}\n")
        elif done < len(event.text):
            sys.stdout.write(f"{event.text[done:]}\n")
        else:
            sys.stdout.write("\n")
        sys.stdout.flush()

    def on_event(self, event: Any) -> None:
        if isinstance(event, ConnectionStateChanged):
            attempt = f" ({event.attempt}/{event.max_attempts})" if event.attempt else ""
            reason = f": {event.reason}" if event.reason else ""
            print(f"[connection] {event.status.value}{attempt}{reason}")
        elif isinstance(event, ControlResponse):
            if event.is_history:
                print(f"[history] {len(event.history)} message(s)")
                for item in event.history:
                    if isinstance(item, dict):
                        print(f"  {item.get('role', '?')}: {item.get('content', '')}")
            else:
                print(f"[control] {event.control_type or '?'} -> {event.status}")
        elif isinstance(event, FileListResponse):
            print(f"[files] {len(event.files)} file(s)")
            for item in event.files:
                if isinstance(item, dict):
                    print(f"  {item.get('name', '?')} ({item.get('size', '?')} bytes)")
        elif isinstance(event, FileContent):
            content = str(event.data.get("content", ""))
            print(f"[file] {event.data.get('fileName', '?')} ({event.data.get('type', '?')}), {len(content)} chars")
        elif isinstance(event, FileUploadResponse):
            print(f"[upload] {event.data.get('status', event.data)}")
        elif isinstance(event, ToolCall):
            print(f"[tool] {event.tool_name} {event.status or ''}".rstrip())
        elif isinstance(event, ToolResult):
            print(f"[tool result] {event.tool_call_id}")
        elif isinstance(event, StatusUpdate):
            print(f"[status] {event.status}{': ' + event.message if event.message else ''}")
        elif isinstance(event, CommunicationError):
            print(f"[error] {event.code}: {event.message}")
        elif isinstance(event, RateLimited):
            print(f"[rate limited] retry after {event.retry_after}s")
        elif isinstance(event, RequestExpired):
            print(f"[timeout] {event.request_kind} {event.request_id}")


async def _read_stdin_line() -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, sys.stdin.readline)


async def _issue(request: PendingRequest) -> None:
    # Responses are printed from the event stream; only report failures here.
    with contextlib.suppress(RequestTimeoutError, ConnectionClosedError):
        await request


async def _handle_command(transport: ChatTransport, line: str, inflight: set[asyncio.Task]) -> bool:
    cmd, _, arg = line.partition(" ")
    arg = arg.strip()
    request: PendingRequest | None = None
    if cmd == "/quit":
        return False
    if cmd == "/help":
        print(HELP)
    elif cmd == "/history":
        request = await transport.get_history()
    elif cmd == "/status":
        request = await transport.get_status()
    elif cmd == "/abort":
        request = await transport.abort()
    elif cmd == "/clear":
        request = await transport.clear_history()
    elif cmd == "/files":
        request = await transport.list_files()
    elif cmd == "/file":
        name, _, flag = arg.partition(" ")
        if not name:
            print("usage: /file <name> [--b64]")
        else:
            request = await transport.request_file(name, as_base64=flag.strip() == "--b64")
    elif cmd == "/upload":
        if not arg:
            print("usage: /upload <path>")
        else:
            try:
                attachment = FileAttachment.from_path(arg)
            except OSError as exc:
                print(f"cannot read {arg}: {exc}")
            else:
                request = await transport.upload_files([attachment])
    else:
        print(f"unknown command {cmd}; /help lists commands")
    if request is not None:
        task = asyncio.create_task(_issue(request))
        inflight.add(task)
        task.add_done_callback(inflight.discard)
    return True


async def _interactive_loop(transport: ChatTransport) -> None:
    inflight: set[asyncio.Task] = set()
    while True:
        line = await _read_stdin_line()
        if not line:
            return
        line = line.strip()
        if not line:
            continue
        try:
            if line.startswith("/"):
                if not await _handle_command(transport, line, inflight):
                    return
            else:
                await transport.send_message(line)
        except (NotConnectedError, RateLimitError) as exc:
            print(f"[not sent] {exc}")


async def run(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    transport = ChatTransport.from_env(
        url=args.url,
        reconnect_attempts=args.reconnect_attempts,
        heartbeat_interval=args.heartbeat_interval,
    )
    printer = _Printer()
    transport.subscribe(printer.on_partial, PartialMessage)
    transport.subscribe(printer.on_complete, MessageComplete)
    transport.subscribe(printer.on_event)

    print(f"ws: {transport.settings.url}")
    print(HELP)
    try:
        await transport.connect()
    except ConnectionFailedError as exc:
        print(f"connect failed: {exc}")
        if transport.settings.reconnect_attempts <= 0:
            return 1
    try:
        await _interactive_loop(transport)
    finally:
        await transport.disconnect()
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(run(parse_args())))


if __name__ == "__main__":
    main()
