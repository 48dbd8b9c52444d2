"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from insurance_bot.adapters.mindee_client import MindeeInferenceClient
from insurance_bot.adapters.openai_chat_client import OpenAIChatClient
from insurance_bot.adapters.telegram_client import (
    HttpxTelegramClient,
    TelegramClient,
)
from insurance_bot.adapters.telegram_file_client import (
    HttpxTelegramFileClient,
    TelegramFileClient,
)
from insurance_bot.config import Settings
from insurance_bot.services.assistant import AssistantService, TextResponder
from insurance_bot.services.documents import (
    DocumentInterpreter,
    InferenceSettings,
    PassportInterpreter,
    VehicleDocumentInterpreter,
)
from insurance_bot.services.session_store import InMemorySessionStore, SessionStore
from insurance_bot.services.workflow import WorkflowEngine


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    telegram_file_client: TelegramFileClient
    session_store: SessionStore
    passport_interpreter: DocumentInterpreter
    vehicle_interpreter: DocumentInterpreter
    assistant: TextResponder
    workflow_engine: WorkflowEngine
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container.

    Raises ConfigurationError when a Mindee key or model id is blank.
    """
    resolved_settings = settings or Settings()
    passport_settings = InferenceSettings(
        model_id=resolved_settings.mindee_passport_model_id,
        api_key=resolved_settings.mindee_passport_api_key,
        initial_delay_seconds=resolved_settings.mindee_initial_delay_seconds,
        poll_interval_seconds=resolved_settings.mindee_poll_interval_seconds,
        max_attempts=resolved_settings.mindee_max_poll_attempts,
        label="passport",
    )
    vehicle_settings = InferenceSettings(
        model_id=resolved_settings.mindee_vehicle_model_id,
        api_key=resolved_settings.mindee_vehicle_api_key,
        initial_delay_seconds=resolved_settings.mindee_initial_delay_seconds,
        poll_interval_seconds=resolved_settings.mindee_poll_interval_seconds,
        max_attempts=resolved_settings.mindee_max_poll_attempts,
        label="vehicle document",
    )
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    telegram_file_client = HttpxTelegramFileClient.create(
        resolved_settings.telegram_bot_token
    )
    mindee_client = MindeeInferenceClient.create(resolved_settings.mindee_base_url)
    chat_client = OpenAIChatClient.create(
        api_key=resolved_settings.groq_api_key,
        base_url=resolved_settings.groq_base_url,
    )
    session_store = InMemorySessionStore()
    passport_interpreter = PassportInterpreter(mindee_client, passport_settings)
    vehicle_interpreter = VehicleDocumentInterpreter(mindee_client, vehicle_settings)
    assistant = AssistantService(client=chat_client, model=resolved_settings.groq_model)
    workflow_engine = WorkflowEngine(
        session_store=session_store,
        telegram_client=telegram_client,
        file_client=telegram_file_client,
        passport_interpreter=passport_interpreter,
        vehicle_interpreter=vehicle_interpreter,
        assistant=assistant,
        price_usd=resolved_settings.policy_price_usd,
        restart_command=resolved_settings.restart_command,
        debug_errors=resolved_settings.environment == "local",
    )

    async def close_resources() -> None:
        await telegram_client.close()
        await telegram_file_client.close()
        await mindee_client.close()
        await chat_client.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        telegram_file_client=telegram_file_client,
        session_store=session_store,
        passport_interpreter=passport_interpreter,
        vehicle_interpreter=vehicle_interpreter,
        assistant=assistant,
        workflow_engine=workflow_engine,
        close_resources=close_resources,
    )
