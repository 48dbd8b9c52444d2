"""Inbound and outbound message models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class InboundMessage:
    """A single message received from a conversation."""

    conversation_id: int
    text: str | None = None
    image_file_id: str | None = None

    @property
    def has_image(self) -> bool:
        return bool(self.image_file_id)

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


@dataclass(frozen=True)
class SessionPrompt:
    """Represents the next user-facing prompt."""

    text: str
    reply_markup: dict | None = None
