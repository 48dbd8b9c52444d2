"""Telegram file download client."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from insurance_bot.adapters.telegram_client import TELEGRAM_API_URL
from insurance_bot.domain.errors import FileDownloadError

_logger = logging.getLogger(__name__)


class TelegramFileClient(Protocol):
    """Interface for downloading Telegram files."""

    async def download_file_bytes(self, file_id: str) -> bytes:
        """Download a Telegram file and return its bytes."""


@dataclass
class HttpxTelegramFileClient(TelegramFileClient):
    """Telegram file client using httpx."""

    bot_token: str
    http_client: httpx.AsyncClient
    api_url: str = TELEGRAM_API_URL

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramFileClient":
        """Create a Telegram file client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    async def download_file_bytes(self, file_id: str) -> bytes:
        """Resolve the file path via getFile and download its bytes."""
        try:
            response = await self.http_client.get(
                f"{self.api_url}/bot{self.bot_token}/getFile",
                params={"file_id": file_id},
                timeout=10,
            )
            response.raise_for_status()
            payload = response.json()
            if not payload.get("ok"):
                raise FileDownloadError(f"Telegram getFile failed for {file_id}")
            file_path = payload["result"]["file_path"]
            file_response = await self.http_client.get(
                f"{self.api_url}/file/bot{self.bot_token}/{file_path}", timeout=20
            )
            file_response.raise_for_status()
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            _logger.warning("Telegram file download failed", extra={"file_id": file_id})
            raise FileDownloadError(f"Could not download file {file_id}") from exc
        return file_response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
