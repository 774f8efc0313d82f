from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path
from typing import Any, Generic, Literal, TypeVar

from . import filters as f
from .context import Context
from .dispatcher import (
    DispatchPolicy,
    Dispatcher,
    ErrorSink,
    Handler,
    Middleware,
    Registration,
)
from .errors import AlreadyRunningError
from .events import UpdateKind
from .fetchers import Fetcher, LongPollingFetcher, WebhookFetcher
from .logging import get_logger
from .sessions import JsonFileSessionStore, MemorySessionStore, Sessions
from .settings import PollingSettings, TeleflowSettings, WebhookSettings
from .telegram.api_models import Update, User
from .telegram.client import BotClient, TelegramClient

logger = get_logger(__name__)

__all__ = ["Bot", "Mode"]

S = TypeVar("S")
Mode = Literal["polling", "webhook"]
H = TypeVar("H", bound=Handler)


class Bot(Generic[S]):
    """Wires an API client, a dispatcher and one active fetcher together."""

    def __init__(
        self,
        token: str | None = None,
        *,
        api: BotClient | None = None,
        policy: DispatchPolicy = DispatchPolicy.FIRST_MATCH,
        sessions: Sessions[S] | None = None,
        error_sink: ErrorSink | None = None,
        me: User | None = None,
    ) -> None:
        if api is None:
            if not token:
                raise ValueError("either a bot token or an api client is required")
            api = TelegramClient(token)
        self.api = api
        self.dispatcher = Dispatcher(
            api,
            policy=policy,
            sessions=sessions,
            error_sink=error_sink,
            me=me,
        )
        self._polling: LongPollingFetcher | None = None
        self._fetcher: Fetcher | None = None
        self._stop_pending = False
        self.settings: TeleflowSettings | None = None

    @classmethod
    def from_settings(
        cls,
        settings: TeleflowSettings,
        *,
        api: BotClient | None = None,
        policy: DispatchPolicy = DispatchPolicy.FIRST_MATCH,
        initial_session: Callable[[], Any] = dict,
    ) -> Bot[Any]:
        sessions: Sessions[Any] | None = None
        if settings.sessions.enabled:
            store = (
                JsonFileSessionStore(Path(settings.sessions.path).expanduser())
                if settings.sessions.path
                else MemorySessionStore()
            )
            sessions = Sessions(store=store, initial=initial_session)
        bot: Bot[Any] = cls(
            settings.bot_token, api=api, policy=policy, sessions=sessions
        )
        bot.settings = settings
        return bot

    @property
    def me(self) -> User | None:
        return self.dispatcher.me

    @property
    def is_running(self) -> bool:
        return self._fetcher is not None

    @property
    def fetcher(self) -> Fetcher | None:
        return self._fetcher

    # Registration

    def register(self, filter: f.Filter, handler: Handler) -> Registration:
        return self.dispatcher.register(filter, handler)

    def use(self, middleware: Middleware) -> None:
        self.dispatcher.use(middleware)

    def set_error_sink(self, sink: ErrorSink | None) -> None:
        self.dispatcher.set_error_sink(sink)

    def on(self, filter: f.Filter) -> Callable[[H], H]:
        def decorator(handler: H) -> H:
            self.register(filter, handler)
            return handler

        return decorator

    def on_kind(self, *kinds: UpdateKind | str) -> Callable[[H], H]:
        return self.on(f.kind(*kinds))

    def command(self, *names: str) -> Callable[[H], H]:
        return self.on(f.command(*names))

    def hears(self, pattern: str | re.Pattern[str]) -> Callable[[H], H]:
        return self.on(f.regex(pattern))

    def on_callback_query(
        self, data: str | re.Pattern[str] | None = None
    ) -> Callable[[H], H]:
        return self.on(f.callback_data(data))

    # Lifecycle

    async def init(self) -> User:
        if self.dispatcher.me is None:
            self.dispatcher.me = await self.api.get_me()
            logger.info(
                "bot.identity",
                bot_id=self.dispatcher.me.id,
                username=self.dispatcher.me.username,
            )
        return self.dispatcher.me

    async def dispatch(self, update: Update) -> Context:
        return await self.dispatcher.dispatch(update)

    def polling_fetcher(self, settings: PollingSettings | None = None) -> LongPollingFetcher:
        """The polling fetcher; reused across restarts so the cursor survives.

        Passing ``settings`` once a fetcher exists rebuilds it with the new
        settings, resuming from the same cursor.
        """
        if self._polling is not None and settings is None:
            return self._polling
        if self._polling is not None and self._polling.is_running:
            raise AlreadyRunningError("cannot change polling settings while polling")
        if settings is None:
            settings = (
                self.settings.polling if self.settings is not None else PollingSettings()
            )
        cursor = self._polling.cursor if self._polling is not None else None
        self._polling = LongPollingFetcher.from_settings(self.api, settings, cursor=cursor)
        return self._polling

    def _make_fetcher(
        self,
        mode: Mode | Fetcher,
        settings: PollingSettings | WebhookSettings | None,
    ) -> Fetcher:
        if isinstance(mode, Fetcher):
            return mode
        if mode == "polling":
            if settings is not None and not isinstance(settings, PollingSettings):
                raise TypeError("polling mode expects PollingSettings")
            return self.polling_fetcher(settings)
        if mode == "webhook":
            if settings is None:
                settings = (
                    self.settings.webhook if self.settings is not None else WebhookSettings()
                )
            if not isinstance(settings, WebhookSettings):
                raise TypeError("webhook mode expects WebhookSettings")
            return WebhookFetcher.from_settings(self.api, settings)
        raise ValueError(f"unknown mode {mode!r}")

    async def start(
        self,
        mode: Mode | Fetcher | None = None,
        settings: PollingSettings | WebhookSettings | None = None,
    ) -> None:
        """Run until :meth:`stop` is called.

        Only one fetcher may be active per bot; a second ``start`` while one
        is running raises :class:`AlreadyRunningError`.
        """
        if self._fetcher is not None:
            raise AlreadyRunningError("bot is already running")
        if mode is None:
            mode = self.settings.mode if self.settings is not None else "polling"
        fetcher = self._make_fetcher(mode, settings)
        self._fetcher = fetcher
        self._stop_pending = False
        try:
            await self.init()
            # stop() may have arrived while the identity was being fetched.
            if self._stop_pending:
                logger.info("bot.stopped_before_start")
                return
            await fetcher.start(self.dispatcher.dispatch)
        finally:
            self._fetcher = None
            self._stop_pending = False

    def stop(self) -> None:
        fetcher = self._fetcher
        if fetcher is None:
            return
        if fetcher.is_running:
            fetcher.stop()
        else:
            self._stop_pending = True

    async def wait_stopped(self) -> None:
        fetcher = self._fetcher
        if fetcher is not None:
            await fetcher.wait_stopped()

    async def close(self) -> None:
        await self.api.close()
