from __future__ import annotations

import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

import anyio
import msgspec

from .logging import get_logger

if TYPE_CHECKING:
    from .context import Context

logger = get_logger(__name__)

__all__ = [
    "JsonFileSessionStore",
    "MemorySessionStore",
    "SessionStore",
    "Sessions",
    "session_key",
]

S = TypeVar("S")


class SessionStore(Protocol[S]):
    async def get(self, key: str) -> S | None: ...

    async def set(self, key: str, value: S) -> None: ...

    async def delete(self, key: str) -> None: ...


def session_key(ctx: Context) -> str | None:
    """Chat id when the update has a chat, else the sender id."""
    if ctx.chat_id is not None:
        return str(ctx.chat_id)
    sender = ctx.sender
    if sender is not None:
        return str(sender.id)
    return None


class MemorySessionStore(Generic[S]):
    def __init__(self) -> None:
        self._data: dict[str, S] = {}
        self._lock = anyio.Lock()

    async def get(self, key: str) -> S | None:
        async with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: S) -> None:
        async with self._lock:
            self._data[key] = value

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class JsonFileSessionStore(Generic[S]):
    """Keeps every session in one JSON object on disk.

    Values must be encodable by msgspec; ``value_type`` is used to decode
    them back (plain builtins when omitted). The file is rewritten through a
    temporary file and ``os.replace`` so a crash never leaves it truncated.
    """

    def __init__(self, path: Path, *, value_type: Any = Any) -> None:
        self._path = path
        self._decoder = msgspec.json.Decoder(dict[str, value_type])
        self._lock = anyio.Lock()
        self._cache: dict[str, S] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _load_locked(self) -> dict[str, S]:
        if self._cache is not None:
            return self._cache
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            self._cache = {}
            return self._cache
        self._cache = self._decoder.decode(raw) if raw.strip() else {}
        return self._cache

    def _write_locked(self, data: dict[str, S]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = msgspec.json.encode(data)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> S | None:
        async with self._lock:
            return self._load_locked().get(key)

    async def set(self, key: str, value: S) -> None:
        async with self._lock:
            data = dict(self._load_locked())
            data[key] = value
            self._write_locked(data)
            self._cache = data

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = dict(self._load_locked())
            if data.pop(key, None) is None:
                return
            self._write_locked(data)
            self._cache = data


@dataclass(slots=True)
class Sessions(Generic[S]):
    """Session support attached to a dispatcher.

    ``initial`` builds the value handed to handlers when the store has
    nothing for the key yet.
    """

    store: SessionStore[S] = field(default_factory=MemorySessionStore)
    initial: Callable[[], S] = dict  # type: ignore[assignment]
    key: Callable[[Context], str | None] = session_key
