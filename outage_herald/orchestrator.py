"""Herald wiring: credentials, IRC session, command dispatch and poll loops."""

from __future__ import annotations

import asyncio
import signal
from typing import Callable, Protocol

import structlog

from .chat import CommandDispatcher, IRCSession, builtin_commands, load_certificate_bundle
from .chat.certs import CertificateBundle
from .config import ConfigRepository, HeraldConfig, ServerConfig
from .engine import (
    FeedFetcher,
    FileMarkerStore,
    MarkerStore,
    RunStats,
    SourceDescriptor,
    SourceWatcher,
    resolve_sources,
)
from .logging_conf import configure_logging, source_logger
from .scheduler import APSchedulerAdapter, PollScheduler
from .ui import prompt_secret


class ChatSession(Protocol):
    nick: str

    def on(self, event: str, handler) -> None: ...

    async def connect(self) -> None: ...

    async def wait_registered(self, timeout: float | None = None): ...

    async def say(self, target: str, text: str) -> None: ...

    async def join(self, channel: str) -> None: ...

    async def part(self, channel: str, reason: str = "") -> None: ...

    async def quit(self, message: str = "") -> None: ...

    async def close(self) -> None: ...

    def abort(self) -> None: ...


SessionFactory = Callable[[ServerConfig, "CertificateBundle | None"], ChatSession]


class Herald:
    """Central coordinator managing the bot lifecycle."""

    REGISTRATION_TIMEOUT = 60.0

    def __init__(
        self,
        config_repository: ConfigRepository,
        *,
        session_factory: SessionFactory = IRCSession,
        fetcher: FeedFetcher | None = None,
        store: MarkerStore | None = None,
        scheduler: APSchedulerAdapter | None = None,
        prompt: Callable[[str], str] = prompt_secret,
        stats: RunStats | None = None,
    ) -> None:
        self.config_repository = config_repository
        self.config: HeraldConfig = config_repository.load()
        self.session_factory = session_factory
        self.fetcher = fetcher
        self.store = store
        self.scheduler = scheduler
        self.prompt = prompt
        self.stats = stats or RunStats()
        self.logs_dir = config_repository.locator.logs_dir
        self.logger = configure_logging(self.logs_dir).bind(component="herald")
        self.session: ChatSession | None = None
        self.poller: PollScheduler | None = None
        self._stop = asyncio.Event()

    # ------------------------------------------------------------------
    def build_sources(self) -> list[SourceDescriptor]:
        return resolve_sources(self.config.feeds.rss)

    def load_bundle(self) -> CertificateBundle | None:
        certificate = self.config.irc.server.client_certificate
        if certificate is None:
            return None
        bundle = load_certificate_bundle(certificate.from_file)
        self.logger.info("client_certificate_loaded", path=str(certificate.from_file))
        return bundle

    async def ensure_password(self) -> None:
        server = self.config.irc.server
        if not server.needs_password_prompt():
            return
        message = f"Enter nickserv password for {server.nick}@{server.host}"
        password = await asyncio.to_thread(self.prompt, message)
        server.account = server.account.model_copy(update={"password": password})

    # ------------------------------------------------------------------
    async def start(self) -> None:
        # Both raise before any connection attempt on misconfiguration.
        sources = self.build_sources()
        bundle = self.load_bundle()
        await self.ensure_password()

        cache_dir = self.config_repository.cache_dir()
        store = self.store or FileMarkerStore(cache_dir)
        fetcher = self.fetcher or FeedFetcher(timeout=self.config.fetch_timeout_seconds)
        self.fetcher = fetcher

        irc = self.config.irc
        session = self.session_factory(irc.server, bundle)
        self.session = session
        await session.connect()
        await session.wait_registered(self.REGISTRATION_TIMEOUT)

        account = irc.server.account
        if irc.force_auth_after_reg and account is not None and account.password:
            login = account.account or irc.server.nick
            await session.say("NickServ", f"IDENTIFY {login} {account.password}")

        defaults = self.config.default
        dispatcher = CommandDispatcher(
            trigger=defaults.command_prefix,
            table=builtin_commands(self.stats, self.config.feeds.rss),
            send=session.say,
            flood_delay_ms=defaults.command_flood_protect_wait_ms,
        )
        session.on("message", dispatcher.handle)
        session.on("close", lambda _payload: self._stop.set())
        await session.join(irc.channel)
        self.logger.info("channel_joined", channel=irc.channel, sources=[s.source_id for s in sources])

        async def announce(line: str) -> None:
            await session.say(irc.channel, line)

        watchers = [
            SourceWatcher(
                descriptor,
                fetcher,
                store,
                announce,
                self.stats,
                default_interval_minutes=defaults.polling_frequency_minutes,
                flood_delay_ms=defaults.flood_protect_wait_ms,
                logger=source_logger(self.logs_dir, descriptor.source_id),
            )
            for descriptor in sources
        ]
        self.poller = PollScheduler(self.scheduler or APSchedulerAdapter(), watchers)
        self.poller.start()

    def request_stop(self) -> None:
        self._stop.set()

    async def _leave(self, session: ChatSession) -> None:
        await session.part(self.config.irc.channel)
        await session.quit()
        await session.close()

    async def shutdown(self) -> None:
        """Stop polling, then PART, QUIT and close within one grace period."""

        if self.poller is not None:
            self.poller.shutdown()
        session = self.session
        if session is not None:
            irc = self.config.irc
            try:
                await asyncio.wait_for(self._leave(session), irc.shutdown_grace_seconds)
            except asyncio.TimeoutError:
                self.logger.warning("leave_timed_out", channel=irc.channel, grace=irc.shutdown_grace_seconds)
                session.abort()
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("leave_failed", channel=irc.channel, error=str(exc))
                session.abort()
            self.session = None
        if isinstance(self.fetcher, FeedFetcher):
            await self.fetcher.aclose()
        self.logger.info("herald_stopped", announced=self.stats.announced)

    async def run_forever(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.request_stop)
            except (NotImplementedError, RuntimeError):
                continue
        try:
            await self.start()
            await self._stop.wait()
        finally:
            await self.shutdown()


def run_herald(repository: ConfigRepository) -> None:
    asyncio.run(Herald(repository).run_forever())


__all__ = ["ChatSession", "Herald", "run_herald"]
