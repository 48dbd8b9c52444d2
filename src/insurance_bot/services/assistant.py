"""Text generation for free-form answers and policy documents."""

import logging
import random
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol

from insurance_bot.domain.errors import TextGenerationFailed

POLICY_HEADER = "=== CAR INSURANCE POLICY"

POLICY_SYSTEM_PROMPT = """You generate a dummy car insurance policy document.
HARD RULES:
- Output ONLY the policy text.
- NO explanations, NO reasoning, NO markdown.
- Use English language only.
- Keep it short, clear, and official.

EXACT FORMAT:
=== CAR INSURANCE POLICY #<POLICY_NUMBER> ===
Policyholder: <NAME>
Vehicle: <CAR>
License Plate: <PLATE>
Amount: <AMOUNT> USD
Status: PAID
Date: <YYYY-MM-DD>
=========================================="""

_logger = logging.getLogger(__name__)


class ChatClient(Protocol):
    """Interface for a chat completion backend."""

    async def complete(
        self, *, model: str, system_prompt: str, user_message: str, temperature: float
    ) -> str:
        """Return the assistant text for a system and user message pair."""


class TextResponder(Protocol):
    """Capability for answering questions and rendering policies."""

    async def answer(self, system_prompt: str, user_message: str) -> str:
        """Answer a free-form user message."""

    async def render_policy(
        self, name: str, vehicle: str, plate: str, amount_usd: int
    ) -> str:
        """Render a policy document starting with the policy header."""


def _utc_today() -> date:
    return datetime.now(tz=UTC).date()


@dataclass
class AssistantService(TextResponder):
    """Text responder that prepares prompts for a chat client."""

    client: ChatClient
    model: str
    temperature: float = 0.3
    today: Callable[[], date] = _utc_today
    rng: random.Random = field(default_factory=random.Random)

    async def answer(self, system_prompt: str, user_message: str) -> str:
        """Answer a user question, raising TextGenerationFailed on errors."""
        try:
            text = await self.client.complete(
                model=self.model,
                system_prompt=system_prompt,
                user_message=user_message,
                temperature=self.temperature,
            )
        except Exception as exc:
            _logger.exception("Text generation failed", extra={"model": self.model})
            raise TextGenerationFailed(str(exc)) from exc
        if not text or not text.strip():
            raise TextGenerationFailed("Text generation returned an empty response")
        return text.strip()

    async def render_policy(
        self, name: str, vehicle: str, plate: str, amount_usd: int
    ) -> str:
        """Generate a dummy policy and strip any commentary before its header."""
        user_message = (
            f"NAME: {name}\n"
            f"CAR: {vehicle}\n"
            f"PLATE: {plate}\n"
            f"AMOUNT: {amount_usd}\n"
            f"DATE: {self.today().isoformat()}\n"
            f"POLICY_NUMBER: {self.rng.randint(10000, 99999)}"
        )
        raw = await self.answer(POLICY_SYSTEM_PROMPT, user_message)
        return strip_to_policy(raw)


def strip_to_policy(text: str) -> str:
    """Drop everything before the policy header, if the header is present."""
    match = re.search(re.escape(POLICY_HEADER), text, flags=re.IGNORECASE)
    if match is None:
        return text.strip()
    return text[match.start() :].strip()
