from __future__ import annotations

import importlib
import signal
import sys
from functools import partial
from pathlib import Path
from typing import Any

import anyio
import typer

from . import __version__
from .bot import Bot, Mode
from .config import ConfigError, load_settings
from .errors import TelegramApiError, TelegramTransportError
from .logging import get_logger, setup_logging
from .settings import TeleflowSettings
from .telegram.client import TelegramClient

logger = get_logger(__name__)

_CONFIG_OPTION = typer.Option(
    None, "--config", "-c", help="Path to teleflow.toml (default: auto-discover)."
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def _load_settings_or_exit(config: Path | None) -> TeleflowSettings:
    try:
        return load_settings(config)
    except ConfigError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from e


def resolve_app(target: str, settings: TeleflowSettings) -> Bot[Any]:
    """Load ``module:attribute``: a :class:`Bot`, or a setup function taking one."""
    module_name, _, attr = target.partition(":")
    if not module_name:
        raise ConfigError(f"Invalid app {target!r}; expected 'module:attribute'.")
    if str(Path.cwd()) not in sys.path:
        sys.path.insert(0, str(Path.cwd()))
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import {module_name!r}: {e}") from e
    obj = getattr(module, attr or "bot", None)
    if obj is None:
        raise ConfigError(f"{module_name!r} has no attribute {attr or 'bot'!r}.")
    if isinstance(obj, Bot):
        if obj.settings is None:
            obj.settings = settings
        return obj
    if callable(obj):
        bot = Bot.from_settings(settings)
        obj(bot)
        return bot
    raise ConfigError(f"{target!r} is neither a Bot nor a setup function.")


async def _run_bot(bot: Bot[Any], mode: Mode) -> None:
    async with anyio.create_task_group() as tg:
        if mode == "polling":

            async def watch_signals() -> None:
                with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
                    async for signum in signals:
                        logger.info("cli.signal", signal=signum)
                        bot.stop()
                        return

            tg.start_soon(watch_signals)
        try:
            await bot.start(mode)
        finally:
            tg.cancel_scope.cancel()
            with anyio.CancelScope(shield=True):
                await bot.close()


def run(
    app: str = typer.Argument(..., help="Bot to run, as 'module:attribute'."),
    config: Path | None = _CONFIG_OPTION,
    mode: str | None = typer.Option(
        None, "--mode", "-m", help="polling or webhook (default: from config)."
    ),
    debug: bool = typer.Option(False, "--debug", help="Log debug output."),
) -> None:
    """Fetch updates and dispatch them to the bot's handlers."""
    settings = _load_settings_or_exit(config)
    setup_logging(debug=debug or settings.debug)
    resolved_mode = mode or settings.mode
    if resolved_mode not in ("polling", "webhook"):
        typer.echo(f"error: unknown mode {resolved_mode!r}", err=True)
        raise typer.Exit(code=1)
    try:
        bot = resolve_app(app, settings)
    except ConfigError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from e
    try:
        anyio.run(partial(_run_bot, bot, resolved_mode))
    except KeyboardInterrupt:
        raise typer.Exit(code=130) from None


async def _call_api(token: str, method: str, **kwargs: Any) -> Any:
    client = TelegramClient(token)
    try:
        return await getattr(client, method)(**kwargs)
    finally:
        await client.close()


def _api_or_exit(settings: TeleflowSettings, method: str, **kwargs: Any) -> Any:
    try:
        return anyio.run(partial(_call_api, settings.bot_token, method, **kwargs))
    except (TelegramTransportError, TelegramApiError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from e


def set_webhook(
    url: str | None = typer.Argument(None, help="Public URL (default: webhook.url)."),
    config: Path | None = _CONFIG_OPTION,
    secret: str | None = typer.Option(
        None, "--secret", help="Secret token (default: webhook.secret_token)."
    ),
    drop_pending: bool = typer.Option(
        False, "--drop-pending", help="Drop updates queued on the platform."
    ),
) -> None:
    """Point Telegram at the webhook endpoint."""
    settings = _load_settings_or_exit(config)
    target = url or settings.webhook.url
    if not target:
        typer.echo("error: no URL given and webhook.url is not set", err=True)
        raise typer.Exit(code=1)
    _api_or_exit(
        settings,
        "set_webhook",
        url=target,
        secret_token=secret or settings.webhook.secret_token,
        allowed_updates=settings.webhook.allowed_updates,
        drop_pending_updates=drop_pending or None,
    )
    typer.echo(f"webhook set to {target}")


def delete_webhook(
    config: Path | None = _CONFIG_OPTION,
    drop_pending: bool = typer.Option(
        False, "--drop-pending", help="Drop updates queued on the platform."
    ),
) -> None:
    """Remove the webhook so long polling can be used."""
    settings = _load_settings_or_exit(config)
    _api_or_exit(settings, "delete_webhook", drop_pending_updates=drop_pending or None)
    typer.echo("webhook deleted")


def webhook_info(config: Path | None = _CONFIG_OPTION) -> None:
    """Show the webhook Telegram currently delivers to."""
    settings = _load_settings_or_exit(config)
    info = _api_or_exit(settings, "get_webhook_info")
    typer.echo(f"url = {info.url or '(none)'}")
    typer.echo(f"pending_update_count = {info.pending_update_count}")
    if info.last_error_message:
        typer.echo(f"last_error = {info.last_error_message}")


def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    return None


def create_app() -> typer.Typer:
    app = typer.Typer(
        add_completion=False,
        help="Telegram update ingestion and dispatch.",
    )
    app.callback()(app_main)
    app.command(name="run")(run)
    app.command(name="set-webhook")(set_webhook)
    app.command(name="delete-webhook")(delete_webhook)
    app.command(name="webhook-info")(webhook_info)
    return app


def main() -> None:
    app = create_app()
    app()


if __name__ == "__main__":
    main()
