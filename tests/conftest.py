from __future__ import annotations

import pytest

from teleflow.context import Context
from teleflow.dispatcher import Dispatcher
from teleflow.telegram.api_models import Update

from tests.factories import ME
from tests.telegram_fakes import FakeBot


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_bot() -> FakeBot:
    return FakeBot()


@pytest.fixture
def dispatcher(fake_bot: FakeBot) -> Dispatcher:
    return Dispatcher(fake_bot, me=ME)


@pytest.fixture
def make_ctx(fake_bot: FakeBot):
    def _factory(update: Update) -> Context:
        return Context(update, fake_bot, me=ME)

    return _factory
