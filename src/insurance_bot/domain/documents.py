"""Domain models for document extraction."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ExtractionRecord:
    """Fields recognized from a single document image."""

    given_names: str | None = None
    surname: str | None = None
    document_number: str | None = None
    vehicle_description: str | None = None
    license_plate: str | None = None
