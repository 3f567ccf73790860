from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from urllib.parse import urlparse

from telegram import Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import Application, ContextTypes

TELEGRAM_SAFE_TEXT_LIMIT = 4000
DEFAULT_WEBHOOK_LISTEN = "0.0.0.0"  # noqa: S104
DEFAULT_WEBHOOK_PORT = 8443
logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class BotConfig:
    """Runtime settings for Telegram transport."""

    token: str
    allowed_user_ids: set[int]
    webhook_url: str = ""
    listen: str = DEFAULT_WEBHOOK_LISTEN
    port: int = DEFAULT_WEBHOOK_PORT
    donate_url: str = ""


class ChatRequiredError(ValueError):
    """Raised when a Telegram update does not include a chat object."""


class BaseBridge:
    """Handler plumbing shared by both bots."""

    concurrent_updates = True

    def __init__(self, config: BotConfig) -> None:
        self._config = config
        self._app: Application | None = None

    def install(self, app: Application) -> None:
        raise NotImplementedError

    async def shutdown(self, app: Application) -> None:
        del app

    def _is_allowed(self, update: Update) -> bool:
        allowed = self._config.allowed_user_ids
        if not allowed:
            return True

        user_id = update.effective_user.id if update.effective_user else None
        return user_id in allowed

    async def _require_access(self, update: Update) -> bool:
        if self._is_allowed(update):
            return True

        await self._reply(update, "Access denied for this bot.")
        return False

    @staticmethod
    def _chat_id(update: Update) -> int:
        chat = update.effective_chat
        if chat is None:
            raise ChatRequiredError
        return chat.id

    @staticmethod
    def _context_args(context: ContextTypes.DEFAULT_TYPE) -> list[str]:
        args = context.args
        if not args:
            return []
        return list(args)

    @staticmethod
    def _split_text(text: str, *, limit: int = TELEGRAM_SAFE_TEXT_LIMIT) -> list[str]:
        if not text:
            return [""]
        chunks: list[str] = []
        pending = text
        while pending:
            if len(pending) <= limit:
                chunks.append(pending)
                break
            split_at = pending.rfind("\n", 0, limit)
            if split_at <= 0:
                split_at = limit
            chunks.append(pending[:split_at])
            pending = pending[split_at:]
        return chunks

    @staticmethod
    async def _reply(update: Update, text: str) -> None:
        if update.message is None:
            return
        for chunk in BaseBridge._split_text(text):
            try:
                await update.message.reply_text(chunk, parse_mode=ParseMode.MARKDOWN)
            except TelegramError:
                await update.message.reply_text(chunk)


def build_application(config: BotConfig, bridge: BaseBridge) -> Application:
    app = (
        Application.builder()
        .token(config.token)
        .concurrent_updates(bridge.concurrent_updates)
        .post_shutdown(bridge.shutdown)
        .build()
    )
    bridge.install(app)
    return app


def run(config: BotConfig, bridge: BaseBridge) -> int:
    app = build_application(config, bridge)
    if config.webhook_url:
        url_path = urlparse(config.webhook_url).path.lstrip("/")
        logger.info("Starting webhook on %s:%s path=/%s", config.listen, config.port, url_path)
        app.run_webhook(
            listen=config.listen,
            port=config.port,
            url_path=url_path,
            webhook_url=config.webhook_url,
            secret_token=secrets.token_urlsafe(32),
            allowed_updates=Update.ALL_TYPES,
        )
        return 0

    logger.info("Starting long polling")
    app.run_polling(allowed_updates=Update.ALL_TYPES)
    return 0


def make_config(  # noqa: PLR0913
    *,
    token: str,
    allowed_user_ids: list[int],
    webhook_url: str = "",
    listen: str = DEFAULT_WEBHOOK_LISTEN,
    port: int = DEFAULT_WEBHOOK_PORT,
    donate_url: str = "",
) -> BotConfig:
    return BotConfig(
        token=token,
        allowed_user_ids=set(allowed_user_ids),
        webhook_url=webhook_url,
        listen=listen,
        port=port,
        donate_url=donate_url,
    )
