"""Minimal asyncio IRC session used to announce and answer commands."""

from __future__ import annotations

import asyncio
import base64
import inspect
import ssl
from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

from ..config import ServerConfig
from ..errors import TransportError
from .certs import CertificateBundle, client_ssl_context

EventHandler = Callable[[Any], Any]

MAX_LINE_BYTES = 510
_SASL_FAILURES = {"902", "904", "905", "906", "908"}
_LOGGED_EVENTS = {
    "JOIN", "PART", "KICK", "QUIT", "NICK", "MODE", "TOPIC", "INVITE",
    "NOTICE", "ERROR", "372", "375", "376", "433",
}


@dataclass(slots=True)
class IRCMessage:
    """One parsed protocol line."""

    command: str
    params: list[str] = field(default_factory=list)
    prefix: str | None = None

    @property
    def nick(self) -> str | None:
        if not self.prefix:
            return None
        return self.prefix.split("!", 1)[0]


@dataclass(frozen=True, slots=True)
class ChatMessage:
    sender: str
    target: str
    text: str
    direct: bool = False


def parse_line(line: str) -> IRCMessage:
    line = line.rstrip("\r\n")
    if line.startswith("@"):
        # IRCv3 message tags are not used
        _, _, line = line.partition(" ")
    prefix = None
    if line.startswith(":"):
        prefix, _, line = line[1:].partition(" ")
    trailing = None
    if " :" in line:
        line, trailing = line.split(" :", 1)
    elif line.startswith(":"):
        line, trailing = "", line[1:]
    parts = line.split()
    if not parts:
        raise ValueError("Empty IRC line")
    params = parts[1:]
    if trailing is not None:
        params.append(trailing)
    return IRCMessage(command=parts[0].upper(), params=params, prefix=prefix)


def clean_text(text: str) -> str:
    return " ".join(text.replace("\r", " ").replace("\n", " ").split()) if text else ""


def _fit(line: str) -> str:
    encoded = line.encode("utf-8")
    if len(encoded) <= MAX_LINE_BYTES:
        return line
    return encoded[:MAX_LINE_BYTES].decode("utf-8", errors="ignore")


class IRCSession:
    """Connect, register and exchange lines with one IRC server.

    Events emitted: ``registered`` (the session), ``message``
    (:class:`ChatMessage`), ``part`` (channel) and ``close`` (None).
    Handlers may be plain callables or coroutine functions; coroutine
    handlers run as separate tasks so a slow reply never stalls the reader.
    """

    def __init__(
        self,
        server: ServerConfig,
        bundle: CertificateBundle | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.server = server
        self.bundle = bundle
        self.nick = server.nick
        self.logger = logger or structlog.get_logger("outage_herald.irc").bind(host=server.host)
        self._handlers: dict[str, list[EventHandler]] = {}
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._read_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._registered: asyncio.Event = asyncio.Event()
        self._pending_parts: dict[str, asyncio.Future] = {}

    # ------------------------------------------------------------------
    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def _emit(self, event: str, payload: Any = None) -> None:
        for handler in self._handlers.get(event, []):
            try:
                outcome = handler(payload)
            except Exception as exc:  # noqa: BLE001
                self.logger.error("event_handler_failed", event_name=event, error=str(exc))
                continue
            if inspect.isawaitable(outcome):
                task = asyncio.ensure_future(outcome)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.logger.error("event_handler_failed", error=str(task.exception()))

    # ------------------------------------------------------------------
    @property
    def sasl_mechanism(self) -> str | None:
        if self.bundle is not None:
            return "EXTERNAL"
        account = self.server.account
        if account is not None and account.password:
            return "PLAIN"
        return None

    async def connect(self) -> None:
        context: ssl.SSLContext | None = None
        if self.server.tls:
            context = client_ssl_context(self.bundle)
        try:
            self._reader, self._writer = await asyncio.open_connection(
                self.server.host, self.server.port, ssl=context
            )
        except OSError as exc:
            raise TransportError(f"Cannot connect to {self.server.host}:{self.server.port}") from exc
        self.logger.info("irc_connected", port=self.server.port, tls=self.server.tls)
        if self.sasl_mechanism:
            await self.send_raw("CAP REQ :sasl")
        await self.send_raw(f"NICK {self.nick}")
        username = self.server.username or self.nick
        await self.send_raw(f"USER {username} 0 * :{self.server.realname}")
        self._read_task = asyncio.create_task(self._read_loop())

    async def wait_registered(self, timeout: float | None = None) -> "IRCSession":
        try:
            await asyncio.wait_for(self._registered.wait(), timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError("Timed out waiting for registration") from exc
        return self

    async def send_raw(self, line: str) -> None:
        if self._writer is None:
            raise TransportError("Session is not connected")
        self._writer.write((_fit(line) + "\r\n").encode("utf-8"))
        await self._writer.drain()

    async def say(self, target: str, text: str) -> None:
        await self.send_raw(f"PRIVMSG {target} :{clean_text(text)}")

    async def join(self, channel: str) -> None:
        await self.send_raw(f"JOIN {channel}")

    async def part(self, channel: str, reason: str = "") -> None:
        """Leave ``channel`` and wait until the server confirms."""

        confirmed = asyncio.get_running_loop().create_future()
        self._pending_parts[channel.lower()] = confirmed
        line = f"PART {channel}" + (f" :{reason}" if reason else "")
        await self.send_raw(line)
        await confirmed

    async def quit(self, message: str = "") -> None:
        await self.send_raw("QUIT" + (f" :{message}" if message else ""))

    async def close(self) -> None:
        if self._read_task is not None:
            self._read_task.cancel()
        if self._writer is not None:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except (OSError, ssl.SSLError):
                pass
            self._writer = None

    def abort(self) -> None:
        """Drop the connection without waiting on the peer."""
        if self._read_task is not None:
            self._read_task.cancel()
        if self._writer is not None:
            self._writer.transport.abort()
            self._writer = None

    # ------------------------------------------------------------------
    async def _read_loop(self) -> None:
        assert self._reader is not None
        try:
            while True:
                raw = await self._reader.readline()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace")
                try:
                    message = parse_line(line)
                except ValueError:
                    continue
                await self.handle(message)
        finally:
            self.logger.info("irc_closed")
            self._emit("close")

    async def handle(self, message: IRCMessage) -> None:
        command = message.command
        if command == "PING":
            await self.send_raw("PONG :" + (message.params[-1] if message.params else ""))
        elif command == "CAP":
            await self._handle_cap(message)
        elif command == "AUTHENTICATE":
            await self._handle_authenticate()
        elif command == "903":
            self.logger.info("sasl_succeeded", mechanism=self.sasl_mechanism)
            await self.send_raw("CAP END")
        elif command in _SASL_FAILURES:
            self.logger.warning("sasl_failed", code=command, detail=message.params[-1:])
            await self.send_raw("CAP END")
        elif command == "001":
            if message.params:
                self.nick = message.params[0]
            self.logger.info("irc_registered", nick=self.nick)
            self._registered.set()
            self._emit("registered", self)
        elif command == "433" and not self._registered.is_set():
            self.nick = f"{self.nick}_"
            self.logger.warning("nick_in_use", retry_with=self.nick)
            await self.send_raw(f"NICK {self.nick}")
        elif command == "PRIVMSG" and len(message.params) >= 2:
            target, text = message.params[0], message.params[1]
            self._emit(
                "message",
                ChatMessage(
                    sender=message.nick or "",
                    target=target,
                    text=text,
                    direct=target.lower() == self.nick.lower(),
                ),
            )
        elif command == "PART" and message.params and (message.nick or "").lower() == self.nick.lower():
            channel = message.params[0]
            pending = self._pending_parts.pop(channel.lower(), None)
            if pending is not None and not pending.done():
                pending.set_result(channel)
            self._emit("part", channel)
        elif command == "NICK" and (message.nick or "").lower() == self.nick.lower() and message.params:
            self.nick = message.params[0]
        if command in _LOGGED_EVENTS:
            self.logger.debug("irc_event", command=command, prefix=message.prefix, params=message.params)

    async def _handle_cap(self, message: IRCMessage) -> None:
        subcommand = message.params[1].upper() if len(message.params) > 1 else ""
        capabilities = message.params[-1].split() if message.params else []
        if subcommand == "ACK" and "sasl" in capabilities and self.sasl_mechanism:
            await self.send_raw(f"AUTHENTICATE {self.sasl_mechanism}")
        elif subcommand in {"ACK", "NAK"}:
            await self.send_raw("CAP END")

    async def _handle_authenticate(self) -> None:
        if self.sasl_mechanism == "PLAIN":
            account = self.server.account
            assert account is not None
            login = account.account or self.server.nick
            token = f"{login}\0{login}\0{account.password}".encode("utf-8")
            await self.send_raw("AUTHENTICATE " + base64.b64encode(token).decode("ascii"))
        else:
            await self.send_raw("AUTHENTICATE +")


__all__ = ["ChatMessage", "IRCMessage", "IRCSession", "clean_text", "parse_line"]
