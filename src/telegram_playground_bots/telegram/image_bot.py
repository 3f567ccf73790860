from __future__ import annotations

import logging
from io import BytesIO
from typing import Protocol

from telegram import InputFile, Message, Update
from telegram.constants import ChatAction, MessageLimit
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes

from telegram_playground_bots.imaging.magic_studio import ImageGenerationError
from telegram_playground_bots.telegram.bot import BaseBridge, BotConfig

APP_DOWNLOAD_LINK = "https://play.google.com/store/apps/details?id=com.protecgames.verbovisions"
API_LINK = "https://www.allthingsdev.co/apimarketplace/verbovisions-v2/668fbd59f7e99865d89db6a1"
logger = logging.getLogger(__name__)


class ImageGenerator(Protocol):
    """Text-to-image backend expected by the imagine bot."""

    async def generate(self, prompt: str) -> bytes: ...


class ImagineBridge(BaseBridge):
    """Telegram handlers for the imagine bot."""

    def __init__(self, config: BotConfig, generator: ImageGenerator) -> None:
        super().__init__(config)
        self._generator = generator

    def install(self, app: Application) -> None:
        self._app = app
        app.add_handler(CommandHandler("start", self.start))
        app.add_handler(CommandHandler("help", self.help))
        app.add_handler(CommandHandler("download", self.download))
        app.add_handler(CommandHandler("api", self.api))
        app.add_handler(CommandHandler("imagine", self.imagine))

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        del context
        if not await self._require_access(update):
            return
        await self._reply(update, "Welcome! Use /help to get information about available commands.")

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        del context
        if not await self._require_access(update):
            return
        await self._reply(
            update,
            "Available commands:\n"
            "/start - Start the bot\n"
            "/help - Get information about available commands\n"
            "/download - Get the link to download the Android app\n"
            "/api - Get the API subscription link\n"
            "/imagine {prompt} - Generate an image based on the prompt",
        )

    async def download(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        del context
        if not await self._require_access(update):
            return
        await self._reply(update, f"Download the Android app: {APP_DOWNLOAD_LINK}")

    async def api(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        del context
        if not await self._require_access(update):
            return
        await self._reply(update, f"Make your own client, subscribe the API: {API_LINK}")

    async def imagine(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not await self._require_access(update):
            return
        message = update.message
        if message is None:
            return

        prompt = " ".join(self._context_args(context)).strip()
        if not prompt:
            await self._reply(update, "Prompt is required")
            return

        chat_id = self._chat_id(update)
        status = await message.reply_text("Making the magic happen ✨")
        try:
            await context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
            image = await self._generator.generate(prompt)
            await context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.UPLOAD_PHOTO)
            await message.reply_photo(
                photo=InputFile(BytesIO(image), filename="image.png"),
                caption=self._caption(prompt),
            )
        except ImageGenerationError as exc:
            await self._delete_status(context, chat_id, status)
            await self._reply(update, f"Failed to fetch image. Status code: {exc.status_code}")
        except Exception:
            logger.exception("Image generation failed for chat %s", chat_id)
            await self._delete_status(context, chat_id, status)
            await self._reply(update, "An error occurred while generating the image. Please try again later.")

    @staticmethod
    def _caption(prompt: str) -> str:
        budget = MessageLimit.CAPTION_LENGTH - _utf16_len(_caption_text(""))
        if _utf16_len(prompt) > budget:
            prompt = f"{_truncate_utf16(prompt, budget - 1)}…"
        return _caption_text(prompt)

    @staticmethod
    async def _delete_status(context: ContextTypes.DEFAULT_TYPE, chat_id: int, status: Message) -> None:
        try:
            await context.bot.delete_message(chat_id=chat_id, message_id=status.message_id)
        except TelegramError:
            logger.warning("Could not delete status message %s in chat %s", status.message_id, chat_id)


def _caption_text(prompt: str) -> str:
    return (
        f"Here is your image for prompt: {prompt}\n"
        f"Download the app: {APP_DOWNLOAD_LINK}\n"
        f"Subscribe to the API: {API_LINK}"
    )


def _utf16_len(text: str) -> int:
    # Telegram measures entity and caption lengths in UTF-16 code units.
    return len(text.encode("utf-16-le")) // 2


def _truncate_utf16(text: str, limit: int) -> str:
    used = 0
    for index, char in enumerate(text):
        used += 2 if ord(char) > 0xFFFF else 1
        if used > limit:
            return text[:index]
    return text
