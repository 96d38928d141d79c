from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from outage_herald.chat.commands import (
    Command,
    CommandDispatcher,
    CommandTable,
    builtin_commands,
)
from outage_herald.chat.transport import ChatMessage
from outage_herald.engine.sequencer import FloodSequencer
from outage_herald.engine.stats import RunStats

FEEDS = {
    "aws": "https://status.aws.amazon.com/rss/all.rss",
    "gcp": "https://status.cloud.google.com/en/feed.atom",
}


def _dispatcher(sent, table=None, fake_sleep=None, delay_ms=0):
    async def send(target: str, line: str) -> None:
        sent.append((target, line))

    stats = RunStats(up_since=datetime.now(timezone.utc) - timedelta(minutes=3), announced=7)
    return CommandDispatcher(
        trigger="!outage",
        table=table or builtin_commands(stats, FEEDS),
        send=send,
        flood_delay_ms=delay_ms,
        sequencer_factory=(lambda: FloodSequencer(sleep=fake_sleep)) if fake_sleep else FloodSequencer,
    )


def test_channel_reply_is_addressed_to_sender() -> None:
    sent: list[tuple[str, str]] = []
    dispatcher = _dispatcher(sent)
    message = ChatMessage(sender="alice", target="#outages", text="!outage feeds")
    plan = asyncio.run(dispatcher.handle(message))
    assert plan is not None and not plan.direct
    assert sent == [
        ("#outages", "alice: I'm following these 2 RSS feeds:"),
        ("#outages", "https://status.aws.amazon.com/rss/all.rss (aws)"),
        ("#outages", "https://status.cloud.google.com/en/feed.atom (gcp)"),
    ]


def test_direct_message_replies_to_sender_without_prefix() -> None:
    sent: list[tuple[str, str]] = []
    dispatcher = _dispatcher(sent)
    message = ChatMessage(sender="alice", target="herald", text="!outage uptime", direct=True)
    asyncio.run(dispatcher.handle(message))
    assert len(sent) == 1
    target, line = sent[0]
    assert target == "alice"
    assert line.startswith("I've been running for 3 minutes")
    assert "announced 7 outage events" in line


def test_private_only_command_replies_directly_from_channel() -> None:
    sent: list[tuple[str, str]] = []
    dispatcher = _dispatcher(sent)
    asyncio.run(dispatcher.handle(ChatMessage(sender="bob", target="#outages", text="!outage help")))
    assert {target for target, _ in sent} == {"bob"}
    assert [line for _, line in sent] == ["uptime", "feeds", "help"]


def test_non_commands_and_unknown_commands_are_ignored() -> None:
    sent: list[tuple[str, str]] = []
    dispatcher = _dispatcher(sent)
    for text in ("hello there", "!outage", "!outages feeds", "!outage reboot now", "  "):
        assert asyncio.run(dispatcher.handle(ChatMessage("carol", "#outages", text))) is None
    assert sent == []


def test_arguments_are_passed_and_empty_reply_sends_nothing() -> None:
    seen: list[list[str]] = []

    def echo(args: list[str]) -> list[str]:
        seen.append(args)
        return list(args)

    table = CommandTable([Command("echo", echo)])
    sent: list[tuple[str, str]] = []
    dispatcher = _dispatcher(sent, table=table)
    asyncio.run(dispatcher.handle(ChatMessage("dave", "#outages", "!outage  echo   a b")))
    asyncio.run(dispatcher.handle(ChatMessage("dave", "#outages", "!outage echo")))
    assert seen == [["a", "b"], []]
    assert sent == [("#outages", "dave: a"), ("#outages", "b")]


def test_handler_failure_is_contained() -> None:
    def broken(_args: list[str]) -> list[str]:
        raise RuntimeError("boom")

    sent: list[tuple[str, str]] = []
    dispatcher = _dispatcher(sent, table=CommandTable([Command("broken", broken)]))
    assert asyncio.run(dispatcher.handle(ChatMessage("erin", "#outages", "!outage broken"))) is None
    assert sent == []


def test_multi_line_replies_are_flood_controlled(fake_sleep, sleeps) -> None:
    sent: list[tuple[str, str]] = []
    dispatcher = _dispatcher(sent, fake_sleep=fake_sleep, delay_ms=500)
    asyncio.run(dispatcher.handle(ChatMessage("frank", "#outages", "!outage feeds")))
    assert len(sent) == 3
    assert sleeps == [0.5, 0.5]


def test_table_is_extensible() -> None:
    table = builtin_commands(RunStats(), FEEDS)
    table.register(Command("ping", lambda _args: ["pong"]))
    assert table.names() == ["uptime", "feeds", "help", "ping"]
    sent: list[tuple[str, str]] = []
    asyncio.run(_dispatcher(sent, table=table).handle(ChatMessage("gina", "#outages", "!outage ping")))
    assert sent == [("#outages", "gina: pong")]
