from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from telegram_playground_bots.core.collector import Language, LineCollector
from telegram_playground_bots.core.window import DEFAULT_WINDOW_SECONDS, CollectionWindows
from telegram_playground_bots.execution.models import LANGUAGES, ExecutionResult
from telegram_playground_bots.execution.piston import format_result
from telegram_playground_bots.telegram.bot import BaseBridge, BotConfig

RESULT_DELIVERY_FAILED_TEXT = "Sorry, something went wrong while sending the result."
logger = logging.getLogger(__name__)

CommandCallback = Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]


class CodeExecutor(Protocol):
    """Execution backend expected by the code bot."""

    async def execute(self, *, source: str, language: str, version: str) -> ExecutionResult: ...


class CodeRunnerBridge(BaseBridge):
    """Telegram handlers for the code bot.

    A ``/<language>`` command opens a collection window for the chat. Every
    plain text message from that chat is appended to the window's buffer by a
    single persistent listener, and when the window closes the collected code
    is executed and the output is sent back to the chat.
    """

    # Updates are handled one at a time so lines are appended in delivery order.
    concurrent_updates = False

    def __init__(
        self,
        config: BotConfig,
        executor: CodeExecutor,
        *,
        collector: LineCollector | None = None,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
    ) -> None:
        super().__init__(config)
        self._executor = executor
        self._collector = LineCollector() if collector is None else collector
        self._windows = CollectionWindows(self._collector, self.on_window_closed, delay=window_seconds)

    def install(self, app: Application) -> None:
        self._app = app
        app.add_handler(CommandHandler("start", self.start))
        app.add_handler(CommandHandler("help", self.help))
        app.add_handler(CommandHandler("donate", self.donate))
        for command, language in LANGUAGES.items():
            app.add_handler(CommandHandler(command, self._language_command(language)))
        app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self.on_text))

    async def shutdown(self, app: Application) -> None:
        del app
        await self._windows.aclose()

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        del context
        if not await self._require_access(update):
            return
        await self._reply(
            update,
            "Welcome! Pick a language command such as /python, then send your code. Use /help to see all languages.",
        )

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        del context
        if not await self._require_access(update):
            return
        lines = [f"/{command} - {language.label} {language.version}" for command, language in LANGUAGES.items()]
        await self._reply(
            update,
            "Available languages:\n"
            + "\n".join(lines)
            + f"\n\nAfter the command, send your code. It runs {self._window_text()} later."
            + "\n/donate - Support the bot",
        )

    async def donate(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        del context
        if not await self._require_access(update):
            return
        if update.message is None:
            return
        if not self._config.donate_url:
            await self._reply(update, "Donations are not set up for this bot.")
            return

        keyboard = InlineKeyboardMarkup([[InlineKeyboardButton(text="Donate", url=self._config.donate_url)]])
        await update.message.reply_text("Thank you for supporting the bot!", reply_markup=keyboard)

    async def begin_collection(self, update: Update, *, language: Language) -> None:
        if not await self._require_access(update):
            return

        chat_id = self._chat_id(update)
        if self._windows.is_open(chat_id):
            await self._reply(update, "Already collecting code in this chat. Wait for the current run to finish.")
            return

        self._windows.open(chat_id=chat_id, language=language)
        await self._reply(
            update,
            f"Send your {language.label} code. Everything you send in the next {self._window_text()} will be run.",
        )

    async def on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        del context
        message = update.message
        if message is None or update.effective_chat is None:
            return
        if not self._is_allowed(update):
            return
        self._collector.append_line(chat_id=update.effective_chat.id, text=message.text or "")

    async def on_window_closed(self, chat_id: int, language: Language, source: str) -> None:
        try:
            result = await self._executor.execute(source=source, language=language.name, version=language.version)
            await self._send_text(chat_id, format_result(result))
        except Exception:
            logger.exception("Failed to send execution result to chat %s", chat_id)
            await self._send_delivery_failure(chat_id)

    def _language_command(self, language: Language) -> CommandCallback:
        async def handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            del context
            await self.begin_collection(update, language=language)

        return handler

    async def _send_text(self, chat_id: int, text: str) -> None:
        if self._app is None:
            logger.warning("Dropping message for chat %s: bot is not installed", chat_id)
            return
        for chunk in self._split_text(text):
            await self._app.bot.send_message(chat_id=chat_id, text=chunk)

    async def _send_delivery_failure(self, chat_id: int) -> None:
        if self._app is None:
            return
        try:
            await self._app.bot.send_message(chat_id=chat_id, text=RESULT_DELIVERY_FAILED_TEXT)
        except TelegramError:
            logger.exception("Failed to notify chat %s about a delivery failure", chat_id)

    def _window_text(self) -> str:
        return f"{self._windows.delay:g} seconds"
