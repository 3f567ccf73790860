"""
Telegram playground bots

Two Telegram bots: one runs user-sent code on a remote execution service,
the other turns a text prompt into an image.
"""

from __future__ import annotations

import argparse
import logging
import os
from importlib import metadata

from dotenv import load_dotenv

from telegram_playground_bots.core.collector import LineCollector
from telegram_playground_bots.core.window import DEFAULT_WINDOW_SECONDS
from telegram_playground_bots.execution.piston import PISTON_EXECUTE_URL, PistonClient
from telegram_playground_bots.imaging.magic_studio import MagicStudioClient
from telegram_playground_bots.telegram.bot import DEFAULT_WEBHOOK_LISTEN, DEFAULT_WEBHOOK_PORT, BaseBridge, make_config, run
from telegram_playground_bots.telegram.code_bot import CodeRunnerBridge
from telegram_playground_bots.telegram.image_bot import ImagineBridge


def get_version() -> str:
    try:
        return metadata.version("telegram-playground-bots")
    except metadata.PackageNotFoundError:
        return "unknown"


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than zero: {value}")
    return number


def get_parser() -> argparse.ArgumentParser:
    """Return the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="playground-bot")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {get_version()}")
    parser.add_argument("bot", choices=["code", "imagine"], help="Which bot to run.")
    parser.add_argument("--telegram-token", default=os.getenv("BOT_TOKEN", ""), help="Telegram bot token")
    parser.add_argument(
        "--allowed-user-id",
        action="append",
        default=[],
        type=int,
        help="Allowed Telegram user ID. Can be repeated.",
    )
    parser.add_argument(
        "--webhook-url",
        default=os.getenv("WEBHOOK_URL", ""),
        help="Public HTTPS URL for webhook delivery. Long polling is used when empty.",
    )
    parser.add_argument("--listen", default=DEFAULT_WEBHOOK_LISTEN, help="Webhook listen address.")
    parser.add_argument("--port", type=int, default=os.getenv("PORT", str(DEFAULT_WEBHOOK_PORT)), help="Webhook port.")
    parser.add_argument(
        "--piston-url",
        default=os.getenv("PISTON_URL", PISTON_EXECUTE_URL),
        help="Code-execution endpoint used by the code bot.",
    )
    parser.add_argument(
        "--collection-window",
        type=_positive_float,
        default=os.getenv("COLLECTION_WINDOW_SECONDS", str(DEFAULT_WINDOW_SECONDS)),
        help="Seconds the code bot collects lines before running them.",
    )
    parser.add_argument("--donate-url", default=os.getenv("DONATE_URL", ""), help="Link behind the /donate button.")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level.",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # httpx logs every request URL at INFO, and bot API URLs contain the token.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main(args: list[str] | None = None) -> int:
    """Run the main program."""
    load_dotenv(override=False)
    parser = get_parser()
    opts = parser.parse_args(args=args)

    if not opts.telegram_token:
        parser.error("--telegram-token (or BOT_TOKEN) is required")

    configure_logging(opts.log_level)
    config = make_config(
        token=opts.telegram_token,
        allowed_user_ids=opts.allowed_user_id,
        webhook_url=opts.webhook_url,
        listen=opts.listen,
        port=opts.port,
        donate_url=opts.donate_url,
    )
    bridge: BaseBridge
    if opts.bot == "code":
        bridge = CodeRunnerBridge(
            config=config,
            executor=PistonClient(url=opts.piston_url),
            collector=LineCollector(),
            window_seconds=opts.collection_window,
        )
    else:
        bridge = ImagineBridge(config=config, generator=MagicStudioClient())
    return run(config, bridge)


__all__: list[str] = ["get_parser", "main"]
