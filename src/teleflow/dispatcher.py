from __future__ import annotations

import enum
import inspect
import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import anyio

from .context import Context
from .errors import HandlerError, SessionStoreError, TeleflowError
from .filters import Filter
from .logging import get_logger
from .sessions import Sessions
from .telegram.api_models import Update, User
from .telegram.client import BotClient

logger = get_logger(__name__)

__all__ = [
    "DispatchPolicy",
    "Dispatcher",
    "ErrorSink",
    "Handler",
    "Middleware",
    "Next",
    "Registration",
]

Next = Callable[[], Awaitable[None]]
Handler = Callable[..., Awaitable[None]]
Middleware = Callable[[Context, Next], Awaitable[None]]
ErrorSink = Callable[[TeleflowError], Awaitable[None] | None]


class DispatchPolicy(enum.StrEnum):
    # Run only the first registration whose filter matches.
    FIRST_MATCH = "first_match"
    # Handlers receive ``call_next`` and decide whether the next match runs.
    CHAIN = "chain"


@dataclass(frozen=True, slots=True)
class Registration:
    filter: Filter
    callback: Handler
    order: int
    name: str | None = None


async def log_error(error: TeleflowError) -> None:
    ctx = getattr(error, "ctx", None)
    cause = getattr(error, "error", None) or error
    logger.error(
        "dispatch.error",
        update_id=ctx.update_id if ctx is not None else None,
        error=str(cause),
        error_type=cause.__class__.__name__,
        exc_info=cause,
    )


class Dispatcher:
    """Ordered handler registry and the per-update dispatch pipeline.

    Registrations are evaluated in the order they were added. Global
    middlewares (:meth:`use`) wrap the whole handler pass for every update.
    Exceptions raised by filters, middlewares or handlers never leave
    :meth:`dispatch`; they are wrapped in :class:`HandlerError` and sent to
    the error sink.
    """

    def __init__(
        self,
        api: BotClient,
        *,
        policy: DispatchPolicy = DispatchPolicy.FIRST_MATCH,
        sessions: Sessions[Any] | None = None,
        error_sink: ErrorSink | None = None,
        me: User | None = None,
    ) -> None:
        self.api = api
        self.policy = DispatchPolicy(policy)
        self.sessions = sessions
        self.me = me
        self._error_sink: ErrorSink = error_sink or log_error
        self._registry: list[Registration] = []
        self._middlewares: list[Middleware] = []
        self._order = itertools.count()

    @property
    def registrations(self) -> tuple[Registration, ...]:
        return tuple(self._registry)

    def register(
        self, filter: Filter, callback: Handler, *, name: str | None = None
    ) -> Registration:
        registration = Registration(
            filter=filter,
            callback=callback,
            order=next(self._order),
            name=name or getattr(callback, "__name__", None),
        )
        self._registry.append(registration)
        return registration

    def use(self, middleware: Middleware) -> None:
        self._middlewares.append(middleware)

    def set_error_sink(self, sink: ErrorSink | None) -> None:
        self._error_sink = sink or log_error

    def build_context(self, update: Update) -> Context:
        return Context(update, self.api, me=self.me)

    async def dispatch(self, update: Update) -> Context:
        ctx = self.build_context(update)
        logger.debug("dispatch.update", update_id=update.update_id, kind=ctx.kind.value)
        await self._load_session(ctx)
        try:
            await self._run_middleware(ctx, 0)
        finally:
            with anyio.CancelScope(shield=True):
                await self._save_session(ctx)
        return ctx

    async def report(self, error: TeleflowError) -> None:
        try:
            result = self._error_sink(error)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "dispatch.error_sink_failed",
                error=str(exc),
                error_type=exc.__class__.__name__,
                handler_error=str(error),
            )

    async def _run_middleware(self, ctx: Context, index: int) -> None:
        if index >= len(self._middlewares):
            await self._run_handlers(ctx, 0)
            return
        middleware = self._middlewares[index]

        async def call_next() -> None:
            await self._run_middleware(ctx, index + 1)

        try:
            await middleware(ctx, _once(call_next))
        except Exception as exc:
            await self.report(HandlerError(ctx, exc))

    async def _run_handlers(self, ctx: Context, start: int) -> bool:
        registry = self._registry
        for index in range(start, len(registry)):
            registration = registry[index]
            ctx._matches = None
            try:
                matched = registration.filter(ctx)
            except Exception as exc:
                await self.report(HandlerError(ctx, exc))
                continue
            if not matched:
                continue
            await self._invoke(ctx, registration, index, ctx.matches)
            return True
        if start == 0:
            logger.debug("dispatch.unhandled", update_id=ctx.update_id, kind=ctx.kind.value)
        return False

    async def _invoke(
        self,
        ctx: Context,
        registration: Registration,
        index: int,
        matches: Any,
    ) -> None:
        ctx._matches = matches
        logger.debug(
            "dispatch.handler",
            update_id=ctx.update_id,
            handler=registration.name,
            order=registration.order,
        )
        try:
            if self.policy is DispatchPolicy.FIRST_MATCH:
                await registration.callback(ctx)
            else:

                async def call_next() -> None:
                    await self._run_handlers(ctx, index + 1)
                    ctx._matches = matches

                await registration.callback(ctx, _once(call_next))
        except Exception as exc:
            await self.report(HandlerError(ctx, exc))

    async def _load_session(self, ctx: Context) -> None:
        sessions = self.sessions
        if sessions is None:
            return
        key = sessions.key(ctx)
        if key is None:
            ctx.bind_session(None, None)
            return
        value = None
        try:
            value = await sessions.store.get(key)
        except Exception as exc:
            await self.report(SessionStoreError("get", key, exc, ctx=ctx))
        if value is None:
            value = sessions.initial()
        ctx.bind_session(key, value)

    async def _save_session(self, ctx: Context) -> None:
        sessions = self.sessions
        key = ctx.session_key
        if sessions is None or key is None or not ctx.has_session:
            return
        try:
            await sessions.store.set(key, ctx.session)
        except Exception as exc:
            await self.report(SessionStoreError("set", key, exc, ctx=ctx))


def _once(call_next: Next) -> Next:
    called = False

    async def wrapper() -> None:
        nonlocal called
        if called:
            logger.warning("dispatch.next_called_twice")
            return
        called = True
        await call_next()

    return wrapper
