"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from insurance_bot.api.telegram_models import (
    TelegramMessage,
    TelegramPhotoSize,
    TelegramUpdate,
)
from insurance_bot.app_logging import configure_logging
from insurance_bot.containers import AppContainer
from insurance_bot.domain.messages import InboundMessage
from insurance_bot.telegram_commands import CHAT_MENU_BUTTON, telegram_commands


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.telegram_client.set_my_commands(
                telegram_commands()
            )
            await app.state.container.telegram_client.set_chat_menu_button(
                CHAT_MENU_BUTTON
            )
        except Exception:
            logger.exception("Failed to sync Telegram bot commands")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        update: TelegramUpdate, request: Request
    ) -> dict[str, str]:
        """Handle Telegram webhook updates."""
        state_container: AppContainer = request.app.state.container
        if update.message is None:
            return {"status": "ignored"}
        message = to_inbound_message(update.message)
        await state_container.workflow_engine.handle(message)
        return {"status": "ok"}

    return app


def to_inbound_message(message: TelegramMessage) -> InboundMessage:
    """Convert a Telegram message into a workflow inbound message."""
    photo = _select_largest_photo(message.photo) if message.photo else None
    return InboundMessage(
        conversation_id=message.chat.id,
        text=message.text if message.text is not None else message.caption,
        image_file_id=photo.file_id if photo else None,
    )


def _select_largest_photo(photos: list[TelegramPhotoSize]) -> TelegramPhotoSize:
    """Select the largest photo size from the Telegram payload."""
    return max(photos, key=lambda photo: (photo.width * photo.height))
