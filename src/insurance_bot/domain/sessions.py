"""Domain models for insurance sessions."""

from dataclasses import dataclass, replace
from enum import Enum

from insurance_bot.domain.documents import ExtractionRecord


class WorkflowState(str, Enum):
    """Steps of the insurance purchase workflow."""

    START = "START"
    WAITING_FOR_PASSPORT = "WAITING_FOR_PASSPORT"
    CONFIRMING_PASSPORT = "CONFIRMING_PASSPORT"
    WAITING_FOR_VEHICLE_DOC = "WAITING_FOR_VEHICLE_DOC"
    CONFIRMING_VEHICLE_DOC = "CONFIRMING_VEHICLE_DOC"
    PRICE_AGREEMENT = "PRICE_AGREEMENT"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class Session:
    """Workflow record for one conversation."""

    conversation_id: int
    state: WorkflowState = WorkflowState.START
    given_names: str | None = None
    surname: str | None = None
    document_number: str | None = None
    vehicle_description: str | None = None
    license_plate: str | None = None

    def with_state(self, state: WorkflowState) -> "Session":
        return replace(self, state=state)

    def with_passport(self, record: ExtractionRecord) -> "Session":
        """Replace all passport fields with the ones from the record."""
        return replace(
            self,
            given_names=record.given_names,
            surname=record.surname,
            document_number=record.document_number,
        )

    def with_vehicle(self, record: ExtractionRecord) -> "Session":
        """Replace all vehicle fields with the ones from the record."""
        return replace(
            self,
            vehicle_description=record.vehicle_description,
            license_plate=record.license_plate,
        )

    def clear_passport(self) -> "Session":
        return self.with_passport(ExtractionRecord())

    def clear_vehicle(self) -> "Session":
        return self.with_vehicle(ExtractionRecord())

    def reset(self) -> "Session":
        """Return a fresh session for the same conversation."""
        return Session(conversation_id=self.conversation_id)

    @property
    def holder_name(self) -> str | None:
        name = f"{self.given_names or ''} {self.surname or ''}".strip()
        return name or None
