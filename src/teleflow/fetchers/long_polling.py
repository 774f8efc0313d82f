from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Literal

import anyio

from ..errors import RetryAfter, TelegramApiError, TelegramTransportError
from ..logging import get_logger
from ..settings import PollingSettings
from ..telegram.api_models import MalformedUpdate, Update
from ..telegram.client import BotClient
from .base import DispatchFn, Fetcher

logger = get_logger(__name__)

__all__ = ["LongPollingFetcher"]


class LongPollingFetcher(Fetcher):
    """Pulls updates with ``getUpdates`` and hands them to the dispatcher.

    One request is outstanding at a time. The cursor is ``max(update_id) + 1``
    of the last batch and only moves forward; with ``advance="before"`` it
    moves as soon as a batch arrives, so a failing handler never causes the
    same update to be fetched again. Failed fetches are retried forever with
    exponential backoff capped at ``backoff_max_s``.
    """

    name = "polling"

    def __init__(
        self,
        api: BotClient,
        *,
        timeout_s: int = 30,
        limit: int = 100,
        allowed_updates: Sequence[str] | None = None,
        backoff_initial_s: float = 1.0,
        backoff_max_s: float = 60.0,
        backoff_factor: float = 2.0,
        concurrent: bool = False,
        drop_pending_updates: bool = False,
        advance: Literal["before", "after"] = "before",
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
        cursor: int | None = None,
    ) -> None:
        super().__init__()
        if not 1 <= limit <= 100:
            raise ValueError("limit must be between 1 and 100")
        if advance not in ("before", "after"):
            raise ValueError(f"unknown cursor advance policy {advance!r}")
        self.api = api
        self.timeout_s = timeout_s
        self.limit = limit
        self.allowed_updates = (
            list(allowed_updates) if allowed_updates is not None else None
        )
        self.backoff_initial_s = backoff_initial_s
        self.backoff_max_s = backoff_max_s
        self.backoff_factor = backoff_factor
        self.concurrent = concurrent
        self.drop_pending_updates = drop_pending_updates
        self.advance = advance
        self._sleep = sleep
        self._cursor = cursor
        self._failures = 0
        self._delay: float | None = None
        self._scope: anyio.CancelScope | None = None

    @classmethod
    def from_settings(
        cls, api: BotClient, settings: PollingSettings, *, cursor: int | None = None
    ) -> LongPollingFetcher:
        return cls(
            api,
            cursor=cursor,
            timeout_s=settings.timeout_s,
            limit=settings.limit,
            allowed_updates=settings.allowed_updates,
            backoff_initial_s=settings.backoff_initial_s,
            backoff_max_s=settings.backoff_max_s,
            backoff_factor=settings.backoff_factor,
            concurrent=settings.concurrent,
            drop_pending_updates=settings.drop_pending_updates,
            advance=settings.advance,
        )

    @property
    def cursor(self) -> int | None:
        return self._cursor

    def reset_cursor(self) -> None:
        if self.is_running:
            raise RuntimeError("cannot reset the cursor while polling")
        self._cursor = None

    def _advance(self, next_cursor: int) -> None:
        if self._cursor is None or next_cursor > self._cursor:
            self._cursor = next_cursor

    def next_backoff(self) -> float:
        self._failures += 1
        if self._delay is None:
            delay = self.backoff_initial_s
        else:
            delay = self._delay * self.backoff_factor
        self._delay = min(delay, self.backoff_max_s)
        return self._delay

    def _on_stop(self) -> None:
        if self._scope is not None:
            self._scope.cancel()

    async def _backoff(self, delay: float) -> None:
        """Sleep before the next attempt; :meth:`stop` cuts the sleep short."""
        if self.stop_requested:
            return
        with anyio.CancelScope() as scope:
            self._scope = scope
            try:
                await self._sleep(delay)
            finally:
                self._scope = None

    async def _fetch(self, timeout_s: int) -> list[Update] | None:
        try:
            updates = await self.api.get_updates(
                offset=self._cursor,
                timeout_s=timeout_s,
                limit=self.limit,
                allowed_updates=self.allowed_updates,
            )
        except RetryAfter as exc:
            delay = min(exc.retry_after, self.backoff_max_s)
            self._failures += 1
            logger.info("polling.rate_limited", retry_after=exc.retry_after, delay=delay)
        except TelegramTransportError as exc:
            delay = self.next_backoff()
            logger.warning(
                "polling.fetch_failed",
                error=str(exc),
                status=exc.status,
                failures=self._failures,
                retry_in=delay,
            )
        except TelegramApiError as exc:
            delay = self.next_backoff()
            logger.error(
                "polling.fetch_rejected",
                error=exc.description,
                error_code=exc.error_code,
                failures=self._failures,
                retry_in=delay,
            )
        else:
            self._failures = 0
            self._delay = None
            return updates
        await self._backoff(delay)
        return None

    async def _drop_pending(self) -> None:
        dropped = 0
        while not self.stop_requested:
            try:
                updates = await self.api.get_updates(
                    offset=self._cursor,
                    timeout_s=0,
                    limit=self.limit,
                    allowed_updates=self.allowed_updates,
                )
            except (TelegramTransportError, TelegramApiError) as exc:
                logger.info("polling.backlog.failed", error=str(exc))
                return
            if not updates:
                if dropped:
                    logger.info("polling.backlog.dropped", count=dropped)
                return
            self._advance(max(update.update_id for update in updates) + 1)
            dropped += len(updates)

    async def handle_batch(self, updates: Sequence[Update], dispatch: DispatchFn) -> None:
        if not updates:
            return
        previous = self._cursor
        next_cursor = max(update.update_id for update in updates) + 1
        # Never hand out an update below the cursor that requested this batch,
        # nor the same update_id twice.
        unique: dict[int, Update] = {}
        for update in updates:
            if previous is not None and update.update_id < previous:
                continue
            if isinstance(update, MalformedUpdate):
                logger.warning(
                    "polling.update.skipped",
                    update_id=update.update_id,
                    error=update.error,
                )
                continue
            unique.setdefault(update.update_id, update)
        batch = sorted(unique.values(), key=lambda u: u.update_id)
        if self.advance == "before":
            self._advance(next_cursor)
        logger.debug(
            "polling.batch",
            count=len(batch),
            first=batch[0].update_id if batch else None,
            cursor=self._cursor,
        )
        if self.concurrent:
            async with anyio.create_task_group() as tg:
                for update in batch:
                    tg.start_soon(self._dispatch_one, dispatch, update)
        else:
            for update in batch:
                await self._dispatch_one(dispatch, update)
        if self.advance == "after":
            self._advance(next_cursor)

    async def _run(self, dispatch: DispatchFn) -> None:
        self._failures = 0
        self._delay = None
        if self.drop_pending_updates:
            await self._drop_pending()
        while not self.stop_requested:
            updates = await self._fetch(self.timeout_s)
            if updates is None:
                continue
            await self.handle_batch(updates, dispatch)
