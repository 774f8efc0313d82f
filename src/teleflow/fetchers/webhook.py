from __future__ import annotations

import hmac
from collections.abc import Sequence

import msgspec
import uvicorn
from fastapi import BackgroundTasks, FastAPI, Request, Response

from ..errors import TelegramApiError, TelegramTransportError, WebhookRejected
from ..logging import get_logger
from ..settings import WebhookSettings
from ..telegram.api_models import Update, decode_update
from ..telegram.client import BotClient
from .base import DispatchFn, Fetcher

logger = get_logger(__name__)

__all__ = ["SECRET_TOKEN_HEADER", "WebhookFetcher"]

SECRET_TOKEN_HEADER = "X-Telegram-Bot-Api-Secret-Token"


class WebhookFetcher(Fetcher):
    """Receives updates pushed by Telegram to a single POST route.

    The request is acknowledged as soon as the payload decodes; dispatch runs
    afterwards as a background task of that request. There is no cursor:
    ordering and redelivery are up to the platform.
    """

    name = "webhook"

    def __init__(
        self,
        api: BotClient,
        *,
        host: str = "127.0.0.1",
        port: int = 8080,
        path: str = "/webhook",
        url: str | None = None,
        secret_token: str | None = None,
        allowed_updates: Sequence[str] | None = None,
        drop_pending_updates: bool = False,
        delete_on_stop: bool = False,
    ) -> None:
        super().__init__()
        self.api = api
        self.host = host
        self.port = port
        self.path = path if path.startswith("/") else f"/{path}"
        self.url = url
        self.secret_token = secret_token or None
        self.allowed_updates = (
            list(allowed_updates) if allowed_updates is not None else None
        )
        self.drop_pending_updates = drop_pending_updates
        self.delete_on_stop = delete_on_stop
        self._server: uvicorn.Server | None = None

    @classmethod
    def from_settings(cls, api: BotClient, settings: WebhookSettings) -> WebhookFetcher:
        return cls(
            api,
            host=settings.host,
            port=settings.port,
            path=settings.path,
            url=settings.url,
            secret_token=settings.secret_token,
            allowed_updates=settings.allowed_updates,
            drop_pending_updates=settings.drop_pending_updates,
            delete_on_stop=settings.delete_on_stop,
        )

    def check_secret(self, supplied: str | None) -> None:
        expected = self.secret_token
        if expected is None:
            return
        if supplied is None:
            raise WebhookRejected(401, "missing secret token")
        if not hmac.compare_digest(supplied.encode(), expected.encode()):
            raise WebhookRejected(401, "secret token mismatch")

    def parse_update(self, body: bytes) -> Update:
        try:
            return decode_update(body)
        except msgspec.DecodeError as exc:
            raise WebhookRejected(400, f"malformed update: {exc}") from exc

    def create_app(self, dispatch: DispatchFn) -> FastAPI:
        app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)

        async def receive_update(request: Request, background: BackgroundTasks) -> Response:
            try:
                self.check_secret(request.headers.get(SECRET_TOKEN_HEADER))
                update = self.parse_update(await request.body())
            except WebhookRejected as exc:
                logger.warning(
                    "webhook.rejected",
                    status=exc.status,
                    reason=exc.reason,
                    client=request.client.host if request.client else None,
                )
                return Response(status_code=exc.status)
            logger.debug("webhook.update", update_id=update.update_id)
            background.add_task(self._dispatch_one, dispatch, update)
            return Response(status_code=200)

        app.add_api_route(self.path, receive_update, methods=["POST"])
        return app

    async def register(self) -> None:
        if self.url is None:
            return
        await self.api.set_webhook(
            self.url,
            secret_token=self.secret_token,
            allowed_updates=self.allowed_updates,
            drop_pending_updates=self.drop_pending_updates or None,
        )
        logger.info("webhook.registered", url=self.url)

    async def unregister(self) -> None:
        try:
            await self.api.delete_webhook()
        except (TelegramTransportError, TelegramApiError) as exc:
            logger.warning("webhook.unregister_failed", error=str(exc))
            return
        logger.info("webhook.unregistered")

    def _on_stop(self) -> None:
        if self._server is not None:
            self._server.should_exit = True

    async def _run(self, dispatch: DispatchFn) -> None:
        await self.register()
        config = uvicorn.Config(
            self.create_app(dispatch),
            host=self.host,
            port=self.port,
            log_config=None,
            lifespan="off",
        )
        self._server = uvicorn.Server(config)
        try:
            if not self.stop_requested:
                await self._server.serve()
        finally:
            self._server = None
            if self.delete_on_stop:
                await self.unregister()
