from __future__ import annotations

import abc
from collections.abc import Awaitable, Callable
from typing import Any

import anyio

from ..errors import AlreadyRunningError
from ..logging import get_logger
from ..telegram.api_models import Update

logger = get_logger(__name__)

__all__ = ["DispatchFn", "Fetcher"]

DispatchFn = Callable[[Update], Awaitable[Any]]


class Fetcher(abc.ABC):
    """Source of updates for one bot.

    A fetcher runs at most one loop at a time; :meth:`stop` is cooperative
    and may be called from any task, including a handler.
    """

    name = "fetcher"

    def __init__(self) -> None:
        self._running = False
        self._stop_requested = False
        self._stopped: anyio.Event | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    async def start(self, dispatch: DispatchFn) -> None:
        if self._running:
            raise AlreadyRunningError(f"{self.name} is already running")
        self._running = True
        self._stop_requested = False
        self._stopped = anyio.Event()
        logger.info(f"{self.name}.started")
        try:
            await self._run(dispatch)
        finally:
            self._running = False
            self._stopped.set()
            logger.info(f"{self.name}.stopped")

    def stop(self) -> None:
        if not self._running:
            return
        self._stop_requested = True
        self._on_stop()

    async def wait_stopped(self) -> None:
        if self._stopped is not None:
            await self._stopped.wait()

    def _on_stop(self) -> None:
        return None

    async def _dispatch_one(self, dispatch: DispatchFn, update: Update) -> None:
        try:
            await dispatch(update)
        except Exception as exc:
            logger.error(
                f"{self.name}.dispatch_failed",
                update_id=update.update_id,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )

    @abc.abstractmethod
    async def _run(self, dispatch: DispatchFn) -> None: ...
