"""Composable predicates over a :class:`~teleflow.context.Context`.

Filters are immutable and keep no per-update state, so one instance can be
shared by any number of registrations and evaluated concurrently. Combine
them with ``&``, ``|`` and ``~`` or with :func:`all_of`, :func:`any_of` and
:func:`not_`; evaluation short-circuits left to right.

Text filters (:func:`regex`, :func:`callback_data` with a pattern) record
their matches on the context when they succeed; the dispatcher exposes the
matches of the filter that selected a handler as ``ctx.matches``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .context import parse_command
from .events import UpdateKind

if TYPE_CHECKING:
    from .context import Context

__all__ = [
    "Filter",
    "all_of",
    "always",
    "any_of",
    "callback_data",
    "chat",
    "chat_type",
    "command",
    "has_text",
    "kind",
    "never",
    "not_",
    "predicate",
    "regex",
    "sender",
    "text",
]


class Filter:
    def __call__(self, ctx: Context) -> bool:
        raise NotImplementedError

    def __and__(self, other: Filter) -> Filter:
        return all_of(self, other)

    def __or__(self, other: Filter) -> Filter:
        return any_of(self, other)

    def __invert__(self) -> Filter:
        return Not(self)


@dataclass(frozen=True, slots=True)
class AllOf(Filter):
    filters: tuple[Filter, ...]

    def __call__(self, ctx: Context) -> bool:
        for item in self.filters:
            if not item(ctx):
                return False
        return True


@dataclass(frozen=True, slots=True)
class AnyOf(Filter):
    filters: tuple[Filter, ...]

    def __call__(self, ctx: Context) -> bool:
        for item in self.filters:
            if item(ctx):
                return True
        return False


@dataclass(frozen=True, slots=True)
class Not(Filter):
    inner: Filter

    def __call__(self, ctx: Context) -> bool:
        return not self.inner(ctx)

    def __invert__(self) -> Filter:
        return self.inner


def _flatten(kind: type[AllOf] | type[AnyOf], filters: Iterable[Filter]) -> tuple[Filter, ...]:
    flat: list[Filter] = []
    for item in filters:
        if isinstance(item, kind):
            flat.extend(item.filters)
        else:
            flat.append(item)
    return tuple(flat)


def all_of(*filters: Filter) -> Filter:
    """True when every filter is true; true for no filters."""
    return AllOf(_flatten(AllOf, filters))


def any_of(*filters: Filter) -> Filter:
    """True when some filter is true; false for no filters."""
    return AnyOf(_flatten(AnyOf, filters))


def not_(inner: Filter) -> Filter:
    return ~inner


@dataclass(frozen=True, slots=True)
class Constant(Filter):
    value: bool

    def __call__(self, ctx: Context) -> bool:
        return self.value


def always() -> Filter:
    return Constant(True)


def never() -> Filter:
    return Constant(False)


@dataclass(frozen=True, slots=True)
class Predicate(Filter):
    fn: Callable[[Context], bool]

    def __call__(self, ctx: Context) -> bool:
        return bool(self.fn(ctx))


def predicate(fn: Callable[[Context], bool]) -> Filter:
    return Predicate(fn)


@dataclass(frozen=True, slots=True)
class KindFilter(Filter):
    kinds: frozenset[UpdateKind]

    def __call__(self, ctx: Context) -> bool:
        return ctx.kind in self.kinds


def kind(*kinds: UpdateKind | str) -> Filter:
    if not kinds:
        raise ValueError("kind() needs at least one update kind")
    return KindFilter(frozenset(UpdateKind(value) for value in kinds))


@dataclass(frozen=True, slots=True)
class ChatTypeFilter(Filter):
    types: frozenset[str]

    def __call__(self, ctx: Context) -> bool:
        current = ctx.chat
        return current is not None and current.type in self.types


def chat_type(*types: str) -> Filter:
    if not types:
        raise ValueError("chat_type() needs at least one chat type")
    return ChatTypeFilter(frozenset(types))


@dataclass(frozen=True, slots=True)
class ChatFilter(Filter):
    chat_ids: frozenset[int]

    def __call__(self, ctx: Context) -> bool:
        return ctx.chat_id in self.chat_ids


def chat(*chat_ids: int) -> Filter:
    return ChatFilter(frozenset(chat_ids))


@dataclass(frozen=True, slots=True)
class SenderFilter(Filter):
    user_ids: frozenset[int]

    def __call__(self, ctx: Context) -> bool:
        user = ctx.sender
        return user is not None and user.id in self.user_ids


def sender(*user_ids: int) -> Filter:
    return SenderFilter(frozenset(user_ids))


class HasText(Filter):
    def __call__(self, ctx: Context) -> bool:
        return bool(ctx.text)


def has_text() -> Filter:
    return HasText()


@dataclass(frozen=True, slots=True)
class TextEquals(Filter):
    values: frozenset[str]
    ignore_case: bool = False

    def __call__(self, ctx: Context) -> bool:
        value = ctx.text
        if value is None:
            return False
        if self.ignore_case:
            value = value.casefold()
        return value in self.values


def text(*values: str, ignore_case: bool = False) -> Filter:
    if not values:
        raise ValueError("text() needs at least one value")
    if ignore_case:
        values = tuple(value.casefold() for value in values)
    return TextEquals(frozenset(values), ignore_case=ignore_case)


@dataclass(frozen=True, slots=True)
class RegexFilter(Filter):
    pattern: re.Pattern[str]

    def __call__(self, ctx: Context) -> bool:
        msg = ctx.msg
        if msg is None:
            return False
        value = msg.text if msg.text is not None else msg.caption
        if value is None:
            return False
        found = list(self.pattern.finditer(value))
        if not found:
            return False
        ctx.record_matches(found)
        return True


def regex(pattern: str | re.Pattern[str], flags: int = 0) -> Filter:
    if isinstance(pattern, str):
        pattern = re.compile(pattern, flags)
    return RegexFilter(pattern)


@dataclass(frozen=True, slots=True)
class CommandFilter(Filter):
    names: frozenset[str]
    ignore_case: bool = True

    def __call__(self, ctx: Context) -> bool:
        username = ctx.me.username if ctx.me is not None else None
        parsed = parse_command(ctx.text, bot_username=username)
        if parsed is None:
            return False
        name = parsed[0]
        if self.ignore_case:
            name = name.lower()
        return name in self.names


def command(*names: str, ignore_case: bool = True) -> Filter:
    """Match ``/name`` or ``/name@this_bot`` at the start of the text."""
    if not names:
        raise ValueError("command() needs at least one command name")
    normalized = {name.lstrip("/") for name in names}
    if ignore_case:
        normalized = {name.lower() for name in normalized}
    return CommandFilter(frozenset(normalized), ignore_case=ignore_case)


@dataclass(frozen=True, slots=True)
class CallbackDataFilter(Filter):
    value: str | None = None
    pattern: re.Pattern[str] | None = None

    def __call__(self, ctx: Context) -> bool:
        query = ctx.callback_query
        if query is None or query.data is None:
            return False
        if self.pattern is not None:
            found = list(self.pattern.finditer(query.data))
            if not found:
                return False
            ctx.record_matches(found)
            return True
        if self.value is not None:
            return query.data == self.value
        return True


def callback_data(value: str | re.Pattern[str] | None = None) -> Filter:
    """Callback queries, optionally with exact data or data matching a pattern."""
    if isinstance(value, re.Pattern):
        return CallbackDataFilter(pattern=value)
    return CallbackDataFilter(value=value)
