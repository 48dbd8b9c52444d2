"""Shared test fixtures."""

from dataclasses import dataclass, field

import pytest

from insurance_bot.adapters.telegram_client import TelegramClient
from insurance_bot.config import Settings
from insurance_bot.containers import AppContainer
from insurance_bot.domain.errors import TextGenerationFailed
from insurance_bot.services.assistant import POLICY_HEADER, TextResponder
from insurance_bot.services.documents import (
    InferenceClient,
    InferenceSettings,
    PassportInterpreter,
    VehicleDocumentInterpreter,
)
from insurance_bot.services.session_store import InMemorySessionStore
from insurance_bot.services.workflow import WorkflowEngine

PASSPORT_PAYLOAD: dict[str, object] = {
    "inference": {
        "result": {
            "fields": {
                "given_names": {"value": "ANA"},
                "surnames": {"values": [{"value": "DOE"}]},
                "document_number": {"value": "AB123456"},
            }
        }
    }
}

VEHICLE_PAYLOAD: dict[str, object] = {
    "inference": {
        "result": {
            "fields": {
                "a": {"value": "AA 1234 BB"},
                "d1": {"value": "Toyota"},
                "d3": {"value": "Corolla"},
            }
        }
    }
}


@dataclass
class FakeTelegramClient(TelegramClient):
    """Fake Telegram client that records messages."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    markups: list[dict | None] = field(default_factory=list)
    chat_actions: list[tuple[int, str]] = field(default_factory=list)
    commands: list[dict[str, str]] | None = None
    menu_button: dict[str, object] | None = None
    fail_sends: bool = False

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> None:
        if self.fail_sends:
            raise RuntimeError("telegram is down")
        self.messages.append((chat_id, text))
        self.markups.append(reply_markup)

    async def send_chat_action(self, chat_id: int, action: str = "typing") -> None:
        self.chat_actions.append((chat_id, action))

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands

    async def set_chat_menu_button(
        self, menu_button: dict[str, object] | None = None
    ) -> None:
        self.menu_button = menu_button


@dataclass
class FakeTelegramFileClient:
    """Fake Telegram file client that returns static bytes."""

    content: bytes = b"fake-image-bytes"
    requested: list[str] = field(default_factory=list)
    error: Exception | None = None

    async def download_file_bytes(self, file_id: str) -> bytes:
        self.requested.append(file_id)
        if self.error is not None:
            raise self.error
        return self.content


@dataclass
class FakeInferenceClient(InferenceClient):
    """Fake inference client returning a payload per model id."""

    payloads: dict[str, dict[str, object]] = field(
        default_factory=lambda: {
            "passport-model": PASSPORT_PAYLOAD,
            "vehicle-model": VEHICLE_PAYLOAD,
        }
    )
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

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
        self.calls.append(
            {
                "model_id": model_id,
                "api_key": api_key,
                "image_bytes": image_bytes,
                "initial_delay": initial_delay,
                "poll_interval": poll_interval,
                "max_attempts": max_attempts,
            }
        )
        if self.error is not None:
            raise self.error
        return self.payloads.get(model_id, {})


@dataclass
class StubTextResponder(TextResponder):
    """Deterministic text responder for tests."""

    reply: str = "We need it to verify your identity."
    fail_answers: bool = False
    fail_policies: bool = False
    questions: list[tuple[str, str]] = field(default_factory=list)
    policies: list[dict[str, object]] = field(default_factory=list)

    async def answer(self, system_prompt: str, user_message: str) -> str:
        self.questions.append((system_prompt, user_message))
        if self.fail_answers:
            raise TextGenerationFailed("assistant unavailable")
        return self.reply

    async def render_policy(
        self, name: str, vehicle: str, plate: str, amount_usd: int
    ) -> str:
        self.policies.append(
            {"name": name, "vehicle": vehicle, "plate": plate, "amount": amount_usd}
        )
        if self.fail_policies:
            raise TextGenerationFailed("assistant unavailable")
        return (
            f"{POLICY_HEADER} #12345 ===\n"
            f"Policyholder: {name}\n"
            f"Vehicle: {vehicle}\n"
            f"License Plate: {plate}\n"
            f"Amount: {amount_usd} USD"
        )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="test-token",
        mindee_passport_api_key="mindee-key",
        mindee_passport_model_id="passport-model",
        mindee_vehicle_api_key="mindee-key",
        mindee_vehicle_model_id="vehicle-model",
        groq_api_key="groq-key",
        environment="test",
    )


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def file_client() -> FakeTelegramFileClient:
    return FakeTelegramFileClient()


@pytest.fixture
def inference_client() -> FakeInferenceClient:
    return FakeInferenceClient()


@pytest.fixture
def assistant() -> StubTextResponder:
    return StubTextResponder()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def engine(
    session_store: InMemorySessionStore,
    telegram_client: FakeTelegramClient,
    file_client: FakeTelegramFileClient,
    inference_client: FakeInferenceClient,
    assistant: StubTextResponder,
) -> WorkflowEngine:
    return WorkflowEngine(
        session_store=session_store,
        telegram_client=telegram_client,
        file_client=file_client,
        passport_interpreter=PassportInterpreter(
            inference_client,
            InferenceSettings(
                model_id="passport-model",
                api_key="mindee-key",
                initial_delay_seconds=0,
                poll_interval_seconds=0,
            ),
        ),
        vehicle_interpreter=VehicleDocumentInterpreter(
            inference_client,
            InferenceSettings(
                model_id="vehicle-model",
                api_key="mindee-key",
                initial_delay_seconds=0,
                poll_interval_seconds=0,
            ),
        ),
        assistant=assistant,
    )


@pytest.fixture
def container(
    settings: Settings,
    telegram_client: FakeTelegramClient,
    file_client: FakeTelegramFileClient,
    session_store: InMemorySessionStore,
    assistant: StubTextResponder,
    engine: WorkflowEngine,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        telegram_client=telegram_client,
        telegram_file_client=file_client,
        session_store=session_store,
        passport_interpreter=engine.passport_interpreter,
        vehicle_interpreter=engine.vehicle_interpreter,
        assistant=assistant,
        workflow_engine=engine,
        close_resources=close_resources,
    )
