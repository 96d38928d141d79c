"""Chat command parsing, the built-in command table and reply routing."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping

import structlog

from ..engine.sequencer import FloodSequencer
from ..engine.stats import RunStats, format_duration
from .transport import ChatMessage

CommandHandler = Callable[[list[str]], Any]
Sender = Callable[[str, str], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class Command:
    name: str
    handler: CommandHandler
    private_only: bool = False


@dataclass(frozen=True, slots=True)
class CommandInvocation:
    trigger: str
    name: str
    args: list[str]
    sender: str
    target: str
    direct: bool


@dataclass(slots=True)
class ReplyPlan:
    target: str
    lines: list[str] = field(default_factory=list)
    direct: bool = False


class CommandTable:
    """Named commands; new entries need no dispatcher changes."""

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        self._commands: dict[str, Command] = {}
        for command in commands:
            self.register(command)

    def register(self, command: Command) -> None:
        self._commands[command.name] = command

    def get(self, name: str) -> Command | None:
        return self._commands.get(name)

    def names(self) -> list[str]:
        return list(self._commands)


def builtin_commands(stats: RunStats, feeds: Mapping[str, str]) -> CommandTable:
    """Build the uptime, feeds and help commands."""

    table = CommandTable()

    async def uptime(_args: list[str]) -> list[str]:
        return [
            f"I've been running for {format_duration(stats.uptime())} "
            f"& have announced {stats.announced} outage events during that time."
        ]

    async def feeds_command(_args: list[str]) -> list[str]:
        return [
            f"I'm following these {len(feeds)} RSS feeds:",
            *(f"{url} ({source_id})" for source_id, url in feeds.items()),
        ]

    async def help_command(_args: list[str]) -> list[str]:
        return table.names()

    table.register(Command("uptime", uptime))
    table.register(Command("feeds", feeds_command))
    table.register(Command("help", help_command, private_only=True))
    return table


class CommandDispatcher:
    """Turn inbound chat lines into command replies."""

    def __init__(
        self,
        trigger: str,
        table: CommandTable,
        send: Sender,
        flood_delay_ms: int,
        sequencer_factory: Callable[[], FloodSequencer] = FloodSequencer,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.trigger = trigger
        self.table = table
        self.send = send
        self.flood_delay_ms = flood_delay_ms
        self.sequencer_factory = sequencer_factory
        self.logger = logger or structlog.get_logger("outage_herald.commands")

    def parse(self, message: ChatMessage) -> CommandInvocation | None:
        tokens = message.text.strip().split()
        if len(tokens) < 2 or tokens[0] != self.trigger:
            return None
        return CommandInvocation(
            trigger=tokens[0],
            name=tokens[1],
            args=tokens[2:],
            sender=message.sender,
            target=message.target,
            direct=message.direct,
        )

    async def handle(self, message: ChatMessage) -> ReplyPlan | None:
        invocation = self.parse(message)
        if invocation is None:
            return None
        command = self.table.get(invocation.name)
        if command is None:
            self.logger.debug("unknown_command", command=invocation.name, sender=invocation.sender)
            return None

        try:
            reply = command.handler(list(invocation.args))
            if inspect.isawaitable(reply):
                reply = await reply
        except Exception as exc:  # noqa: BLE001
            self.logger.error("command_failed", command=command.name, error=str(exc))
            return None

        lines = [str(line) for line in (reply or [])]
        if not lines:
            self.logger.info("command_without_reply", command=command.name, args=invocation.args)
            return None

        plan = self.plan_reply(invocation, command, lines)
        self.logger.info(
            "replying",
            command=command.name,
            target=plan.target,
            reply="|".join(plan.lines),
        )
        await self.sequencer_factory().run(
            [self._say(plan.target, line) for line in plan.lines],
            self.flood_delay_ms,
        )
        return plan

    @staticmethod
    def plan_reply(invocation: CommandInvocation, command: Command, lines: list[str]) -> ReplyPlan:
        direct = invocation.direct or command.private_only
        if direct:
            return ReplyPlan(target=invocation.sender, lines=list(lines), direct=True)
        addressed = [f"{invocation.sender}: {lines[0]}", *lines[1:]]
        return ReplyPlan(target=invocation.target, lines=addressed, direct=False)

    def _say(self, target: str, line: str) -> Callable[[], Awaitable[Any]]:
        def _action() -> Awaitable[Any]:
            return self.send(target, line)

        return _action


__all__ = [
    "Command",
    "CommandDispatcher",
    "CommandInvocation",
    "CommandTable",
    "ReplyPlan",
    "builtin_commands",
]
