"""Document interpreters backed by the inference job client."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from insurance_bot.domain.documents import ExtractionRecord
from insurance_bot.domain.errors import ConfigurationError
from insurance_bot.services.fields import first_field_value, resolve_path

FIELDS_PATH = ("inference", "result", "fields")

PASSPORT_FIELDS: dict[str, tuple[str, ...]] = {
    "given_names": ("given_names", "given_name"),
    "surname": ("surnames", "surname"),
    "document_number": ("document_number", "passport_number"),
}

# EU registration certificate codes: A plate, D.1 make, D.2 type, D.3 model.
VEHICLE_FIELDS: dict[str, tuple[str, ...]] = {
    "license_plate": ("a", "license_plate", "document_number"),
    "brand": ("d1", "d2"),
    "model": ("d3", "d2_1"),
}


class InferenceClient(Protocol):
    """Interface for the asynchronous extraction backend."""

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
        """Submit an image, wait for the job and return the raw payload."""


class DocumentInterpreter(Protocol):
    """Interface for turning a document image into an extraction record."""

    async def extract(self, image_bytes: bytes) -> ExtractionRecord:
        """Extract the document fields from an image."""


@dataclass(frozen=True)
class InferenceSettings:
    """Model configuration for one document type."""

    model_id: str
    api_key: str
    initial_delay_seconds: float = 3.0
    poll_interval_seconds: float = 1.2
    max_attempts: int = 40
    label: str = "document"

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(f"API key for {self.label} model is missing")
        if not self.model_id or not self.model_id.strip():
            raise ConfigurationError(f"Model id for {self.label} model is missing")
        if self.max_attempts < 1:
            raise ConfigurationError(
                f"Max polling attempts for {self.label} model must be positive"
            )


async def _run_inference(
    client: InferenceClient, settings: InferenceSettings, image_bytes: bytes
) -> Mapping[str, object] | None:
    payload = await client.submit_and_await_result(
        model_id=settings.model_id,
        api_key=settings.api_key,
        image_bytes=image_bytes,
        initial_delay=settings.initial_delay_seconds,
        poll_interval=settings.poll_interval_seconds,
        max_attempts=settings.max_attempts,
    )
    return resolve_path(payload, FIELDS_PATH)


@dataclass
class PassportInterpreter(DocumentInterpreter):
    """Extracts holder names and document number from a passport."""

    client: InferenceClient
    settings: InferenceSettings

    async def extract(self, image_bytes: bytes) -> ExtractionRecord:
        """Extract passport fields, leaving undetected ones empty."""
        fields = await _run_inference(self.client, self.settings, image_bytes)
        if fields is None:
            return ExtractionRecord()
        return ExtractionRecord(
            given_names=first_field_value(fields, PASSPORT_FIELDS["given_names"]),
            surname=first_field_value(fields, PASSPORT_FIELDS["surname"]),
            document_number=first_field_value(
                fields, PASSPORT_FIELDS["document_number"]
            ),
        )


@dataclass
class VehicleDocumentInterpreter(DocumentInterpreter):
    """Extracts vehicle description and plate from a registration document."""

    client: InferenceClient
    settings: InferenceSettings

    async def extract(self, image_bytes: bytes) -> ExtractionRecord:
        """Extract vehicle fields, leaving undetected ones empty."""
        fields = await _run_inference(self.client, self.settings, image_bytes)
        if fields is None:
            return ExtractionRecord()
        brand = first_field_value(fields, VEHICLE_FIELDS["brand"])
        model = first_field_value(fields, VEHICLE_FIELDS["model"])
        plate = first_field_value(fields, VEHICLE_FIELDS["license_plate"])
        return ExtractionRecord(
            vehicle_description=build_vehicle_description(brand, model),
            license_plate=normalize_plate(plate),
        )


def build_vehicle_description(brand: str | None, model: str | None) -> str | None:
    """Join brand and model with a single space when both are present."""
    brand = _clean(brand)
    model = _clean(model)
    if brand and model:
        return f"{brand} {model}"
    return brand or model


def normalize_plate(plate: str | None) -> str | None:
    """Strip all whitespace from a license plate."""
    cleaned = _clean(plate)
    if cleaned is None:
        return None
    return "".join(cleaned.split())


def _clean(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()
