"""Mindee v2 asynchronous inference client."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from insurance_bot.domain.errors import (
    ConfigurationError,
    FetchFailed,
    PollingFailed,
    PollingTimeout,
    SubmissionFailed,
)
from insurance_bot.services.documents import InferenceClient

_logger = logging.getLogger(__name__)

_POLL_VALID_STATUSES = {
    httpx.codes.OK,
    httpx.codes.ACCEPTED,
    httpx.codes.FOUND,
}


@dataclass
class MindeeInferenceClient(InferenceClient):
    """Runs the enqueue, poll and fetch protocol against Mindee."""

    base_url: str
    http_client: httpx.AsyncClient
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    @classmethod
    def create(cls, base_url: str) -> "MindeeInferenceClient":
        """Create a Mindee client with a managed httpx session."""
        # Poll responses may be 302s that embed the job JSON, so redirects stay off.
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(follow_redirects=False),
        )

    async def submit_and_await_result(  # noqa: PLR0913
        self,
        *,
        model_id: str,
        api_key: str,
        image_bytes: bytes,
        initial_delay: float,
        poll_interval: float,
        max_attempts: int,
    ) -> dict[str, object]:
        """Submit an image and wait for the structured extraction result."""
        if not api_key or not api_key.strip():
            raise ConfigurationError("Mindee API key is empty")
        if not model_id or not model_id.strip():
            raise ConfigurationError("Mindee model id is empty")

        headers = {"Authorization": api_key}
        polling_url = await self._enqueue(model_id, image_bytes, headers)

        if initial_delay > 0:
            await self.sleep(initial_delay)

        result_url = await self._poll(polling_url, headers, poll_interval, max_attempts)
        return await self._fetch(result_url, headers)

    async def _enqueue(
        self, model_id: str, image_bytes: bytes, headers: dict[str, str]
    ) -> str:
        try:
            response = await self.http_client.post(
                f"{self.base_url}/v2/inferences/enqueue",
                data={"model_id": model_id},
                files={
                    "file": (
                        "document.jpg",
                        image_bytes,
                        _detect_mime_type(image_bytes),
                    )
                },
                headers=headers,
                timeout=30,
            )
        except httpx.RequestError as exc:
            raise SubmissionFailed(f"Mindee enqueue request failed: {exc}") from exc
        if not response.is_success:
            raise SubmissionFailed(
                f"Mindee enqueue error {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        polling_url = _read_job_url(response, "polling_url")
        if polling_url is None:
            raise SubmissionFailed(
                "Mindee enqueue response missing job.polling_url",
                status_code=response.status_code,
                body=response.text,
            )
        _logger.info(
            "Mindee job enqueued",
            extra={"model_id": model_id, "polling_url": polling_url},
        )
        return polling_url

    async def _poll(
        self,
        polling_url: str,
        headers: dict[str, str],
        poll_interval: float,
        max_attempts: int,
    ) -> str:
        for _ in range(max_attempts):
            try:
                response = await self.http_client.get(
                    polling_url, headers=headers, timeout=15
                )
            except httpx.RequestError as exc:
                raise PollingFailed(f"Mindee polling request failed: {exc}") from exc
            if response.status_code not in _POLL_VALID_STATUSES:
                raise PollingFailed(
                    f"Mindee polling error {response.status_code}",
                    status_code=response.status_code,
                    body=response.text,
                )
            result_url = _read_job_url(response, "result_url")
            if result_url is not None:
                return result_url
            if poll_interval > 0:
                await self.sleep(poll_interval)

        _logger.warning(
            "Mindee polling timed out",
            extra={"polling_url": polling_url, "attempts": max_attempts},
        )
        raise PollingTimeout(max_attempts)

    async def _fetch(
        self, result_url: str, headers: dict[str, str]
    ) -> dict[str, object]:
        try:
            response = await self.http_client.get(
                result_url, headers=headers, timeout=15
            )
        except httpx.RequestError as exc:
            raise FetchFailed(f"Mindee result request failed: {exc}") from exc
        if not response.is_success:
            raise FetchFailed(
                f"Mindee result error {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchFailed(
                "Mindee result is not valid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        if not isinstance(payload, dict):
            raise FetchFailed(
                "Mindee result is not a JSON object",
                status_code=response.status_code,
                body=response.text,
            )
        return payload

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _read_job_url(response: httpx.Response, key: str) -> str | None:
    """Read ``job.<key>`` from a job descriptor body, if present."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    job = payload.get("job")
    if not isinstance(job, dict):
        return None
    value = job.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes.startswith(b"%PDF"):
        return "application/pdf"
    return "image/jpeg"
