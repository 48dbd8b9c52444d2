"""Per-conversation workflow engine for the insurance purchase flow."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from insurance_bot.adapters.telegram_client import TelegramClient
from insurance_bot.adapters.telegram_file_client import TelegramFileClient
from insurance_bot.domain.documents import ExtractionRecord
from insurance_bot.domain.errors import InsuranceBotError, TextGenerationFailed
from insurance_bot.domain.messages import InboundMessage, SessionPrompt
from insurance_bot.domain.sessions import Session, WorkflowState
from insurance_bot.services.assistant import TextResponder
from insurance_bot.services.documents import DocumentInterpreter
from insurance_bot.services.session_store import SessionStore

YES_ANSWERS = frozenset({"yes", "y", "ok", "okay"})
NO_ANSWERS = frozenset({"no", "n"})

NOT_DETECTED = "(not detected)"

GREETING = (
    "Hello! I will help you purchase car insurance.\n"
    "Please send a photo of your PASSPORT to get started."
)
RESTART_GREETING = (
    "Hello! I will help you purchase car insurance.\n"
    "Send any message to begin, then I will ask for your PASSPORT photo."
)
PASSPORT_REMINDER = "Please send a PHOTO of your passport."
VEHICLE_REMINDER = "Please send a PHOTO of your vehicle registration document."
YES_NO_REMINDER = "Please answer with Yes or No."
ALREADY_ISSUED = (
    "Your insurance policy is already issued.\n"
    "Send /start if you want to create a new one."
)
ASSISTANT_APOLOGY = "Sorry, I can't answer questions right now."
EXTRACTION_APOLOGY = (
    "Sorry, I couldn't read that document. Please try sending the photo again."
)
POLICY_APOLOGY = (
    "Sorry, I couldn't issue your policy right now. "
    "Please answer Yes to try again."
)
GENERIC_APOLOGY = "Sorry, something went wrong. Please try again."
THANK_YOU = "Thank you for your purchase!"

YES_NO_KEYBOARD: dict[str, object] = {
    "keyboard": [[{"text": "Yes"}, {"text": "No"}]],
    "one_time_keyboard": True,
    "resize_keyboard": True,
}

_QUESTION_SYSTEM_PROMPT = (
    "You are the assistant of a Telegram bot that sells car insurance. "
    "The purchase flow is: the user sends a photo of their passport, confirms "
    "the extracted data, sends a photo of their vehicle registration document, "
    "confirms it, agrees to a fixed price of {price} USD and receives a policy. "
    "Right now the bot is waiting for {expected}. "
    "Answer the user's message briefly and politely in English. "
    "Do not promise discounts or terms that are not described here."
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowStep:
    """Result of handling one message: the session to commit and the replies."""

    session: Session
    prompts: tuple[SessionPrompt, ...] = ()


Handler = Callable[[Session, InboundMessage], Awaitable[WorkflowStep]]


def parse_yes_no(text: str | None) -> bool | None:
    """Return True for yes, False for no and None for anything else."""
    normalized = (text or "").strip().lower()
    if normalized in YES_ANSWERS:
        return True
    if normalized in NO_ANSWERS:
        return False
    return None


@dataclass
class WorkflowEngine:
    """State machine guiding a conversation from passport to policy."""

    session_store: SessionStore
    telegram_client: TelegramClient
    file_client: TelegramFileClient
    passport_interpreter: DocumentInterpreter
    vehicle_interpreter: DocumentInterpreter
    assistant: TextResponder
    price_usd: int = 100
    restart_command: str = "/start"
    debug_errors: bool = False
    _locks: dict[int, asyncio.Lock] = field(
        default_factory=dict, init=False, repr=False
    )

    async def handle(self, message: InboundMessage) -> Session:
        """Process one inbound message and return the committed session."""
        conversation_id = message.conversation_id
        async with self._lock_for(conversation_id):
            session = self.session_store.get_or_create(conversation_id)
            try:
                step = await self.dispatch(session, message)
            except Exception as exc:
                _logger.exception(
                    "Failed to handle message",
                    extra={
                        "conversation_id": conversation_id,
                        "state": session.state.value,
                    },
                )
                await self._send(
                    conversation_id,
                    (SessionPrompt(text=self._error_text(exc, GENERIC_APOLOGY)),),
                )
                return session
            self.session_store.upsert(step.session)
            await self._send(conversation_id, step.prompts)
            return step.session

    def is_restart(self, text: str | None) -> bool:
        """Return true when the text is the restart command."""
        return (text or "").strip().lower() == self.restart_command.strip().lower()

    async def dispatch(self, session: Session, message: InboundMessage) -> WorkflowStep:
        """Apply the restart rule, then route to the handler for the state."""
        if self.is_restart(message.text):
            return self._on_start(session.reset(), restarted=True)
        if session.state is WorkflowState.START:
            return self._on_start(session, restarted=False)

        handlers: dict[WorkflowState, Handler] = {
            WorkflowState.WAITING_FOR_PASSPORT: self._on_waiting_for_passport,
            WorkflowState.CONFIRMING_PASSPORT: self._on_confirming_passport,
            WorkflowState.WAITING_FOR_VEHICLE_DOC: self._on_waiting_for_vehicle_doc,
            WorkflowState.CONFIRMING_VEHICLE_DOC: self._on_confirming_vehicle_doc,
            WorkflowState.PRICE_AGREEMENT: self._on_price_agreement,
            WorkflowState.COMPLETED: self._on_completed,
        }
        return await handlers[session.state](session, message)

    def _on_start(self, session: Session, *, restarted: bool) -> WorkflowStep:
        if restarted:
            return WorkflowStep(
                session=session.with_state(WorkflowState.START),
                prompts=(SessionPrompt(text=RESTART_GREETING),),
            )
        return WorkflowStep(
            session=session.with_state(WorkflowState.WAITING_FOR_PASSPORT),
            prompts=(SessionPrompt(text=GREETING),),
        )

    async def _on_waiting_for_passport(
        self, session: Session, message: InboundMessage
    ) -> WorkflowStep:
        if message.has_image:
            try:
                record = await self._extract(self.passport_interpreter, message)
            except InsuranceBotError as exc:
                return self._extraction_failed(session, exc, "passport")
            updated = session.with_passport(record).with_state(
                WorkflowState.CONFIRMING_PASSPORT
            )
            return WorkflowStep(
                session=updated,
                prompts=(
                    SessionPrompt(
                        text=_passport_summary(updated), reply_markup=YES_NO_KEYBOARD
                    ),
                ),
            )
        if message.has_text:
            return await self._answer_question(
                session,
                message.text or "",
                "a photo of the user's passport",
                PASSPORT_REMINDER,
            )
        return WorkflowStep(session=session, prompts=(SessionPrompt(PASSPORT_REMINDER),))

    async def _on_confirming_passport(
        self, session: Session, message: InboundMessage
    ) -> WorkflowStep:
        answer = parse_yes_no(message.text)
        if answer is True:
            return WorkflowStep(
                session=session.with_state(WorkflowState.WAITING_FOR_VEHICLE_DOC),
                prompts=(
                    SessionPrompt(
                        "Great! Now please send a photo of your "
                        "VEHICLE REGISTRATION DOCUMENT."
                    ),
                ),
            )
        if answer is False:
            return WorkflowStep(
                session=session.clear_passport().with_state(
                    WorkflowState.WAITING_FOR_PASSPORT
                ),
                prompts=(
                    SessionPrompt("Okay, please send a clearer photo of your passport."),
                ),
            )
        return _yes_no_reprompt(session)

    async def _on_waiting_for_vehicle_doc(
        self, session: Session, message: InboundMessage
    ) -> WorkflowStep:
        if message.has_image:
            try:
                record = await self._extract(self.vehicle_interpreter, message)
            except InsuranceBotError as exc:
                return self._extraction_failed(session, exc, "vehicle document")
            updated = session.with_vehicle(record).with_state(
                WorkflowState.CONFIRMING_VEHICLE_DOC
            )
            return WorkflowStep(
                session=updated,
                prompts=(
                    SessionPrompt(
                        text=_vehicle_summary(updated), reply_markup=YES_NO_KEYBOARD
                    ),
                ),
            )
        if message.has_text:
            return await self._answer_question(
                session,
                message.text or "",
                "a photo of the user's vehicle registration document",
                VEHICLE_REMINDER,
            )
        return WorkflowStep(session=session, prompts=(SessionPrompt(VEHICLE_REMINDER),))

    async def _on_confirming_vehicle_doc(
        self, session: Session, message: InboundMessage
    ) -> WorkflowStep:
        answer = parse_yes_no(message.text)
        if answer is True:
            return WorkflowStep(
                session=session.with_state(WorkflowState.PRICE_AGREEMENT),
                prompts=(
                    SessionPrompt(
                        text=(
                            f"The insurance price is fixed at {self.price_usd} USD.\n"
                            "Do you agree? (Yes / No)"
                        ),
                        reply_markup=YES_NO_KEYBOARD,
                    ),
                ),
            )
        if answer is False:
            return WorkflowStep(
                session=session.clear_vehicle().with_state(
                    WorkflowState.WAITING_FOR_VEHICLE_DOC
                ),
                prompts=(
                    SessionPrompt(
                        "Okay, please send a clearer photo of your vehicle document."
                    ),
                ),
            )
        return _yes_no_reprompt(session)

    async def _on_price_agreement(
        self, session: Session, message: InboundMessage
    ) -> WorkflowStep:
        answer = parse_yes_no(message.text)
        if answer is None:
            return _yes_no_reprompt(session)
        if answer is False:
            return WorkflowStep(
                session=session,
                prompts=(
                    SessionPrompt(
                        f"Sorry, the price of {self.price_usd} USD is final "
                        "and cannot be changed."
                    ),
                ),
            )

        await self._send_typing(session.conversation_id)
        try:
            policy = await self.assistant.render_policy(
                name=session.holder_name or "Unknown",
                vehicle=session.vehicle_description or "Unknown",
                plate=session.license_plate or "Unknown",
                amount_usd=self.price_usd,
            )
        except TextGenerationFailed as exc:
            _logger.exception(
                "Policy generation failed",
                extra={"conversation_id": session.conversation_id},
            )
            return WorkflowStep(
                session=session,
                prompts=(SessionPrompt(self._error_text(exc, POLICY_APOLOGY)),),
            )
        return WorkflowStep(
            session=session.with_state(WorkflowState.COMPLETED),
            prompts=(SessionPrompt(policy), SessionPrompt(THANK_YOU)),
        )

    async def _on_completed(
        self, session: Session, message: InboundMessage
    ) -> WorkflowStep:
        return WorkflowStep(
            session=session.with_state(WorkflowState.START),
            prompts=(SessionPrompt(ALREADY_ISSUED),),
        )

    async def _extract(
        self, interpreter: DocumentInterpreter, message: InboundMessage
    ) -> ExtractionRecord:
        await self._send_typing(message.conversation_id)
        image_bytes = await self.file_client.download_file_bytes(
            message.image_file_id or ""
        )
        return await interpreter.extract(image_bytes)

    def _extraction_failed(
        self, session: Session, exc: InsuranceBotError, document: str
    ) -> WorkflowStep:
        _logger.exception(
            "Document extraction failed",
            extra={
                "conversation_id": session.conversation_id,
                "document": document,
                "status_code": getattr(exc, "status_code", None),
            },
        )
        return WorkflowStep(
            session=session,
            prompts=(SessionPrompt(self._error_text(exc, EXTRACTION_APOLOGY)),),
        )

    async def _answer_question(
        self, session: Session, question: str, expected: str, reminder: str
    ) -> WorkflowStep:
        system_prompt = _QUESTION_SYSTEM_PROMPT.format(
            price=self.price_usd, expected=expected
        )
        try:
            answer = await self.assistant.answer(system_prompt, question.strip())
        except TextGenerationFailed:
            _logger.exception(
                "Failed to answer question",
                extra={"conversation_id": session.conversation_id},
            )
            answer = ASSISTANT_APOLOGY
        return WorkflowStep(
            session=session,
            prompts=(SessionPrompt(answer), SessionPrompt(reminder)),
        )

    async def _send(self, chat_id: int, prompts: Sequence[SessionPrompt]) -> None:
        for prompt in prompts:
            try:
                await self.telegram_client.send_message(
                    chat_id=chat_id,
                    text=prompt.text,
                    reply_markup=prompt.reply_markup,
                )
            except Exception:
                _logger.exception(
                    "Failed to send Telegram message", extra={"chat_id": chat_id}
                )

    async def _send_typing(self, chat_id: int) -> None:
        try:
            await self.telegram_client.send_chat_action(chat_id, "typing")
        except Exception:
            _logger.warning("Failed to send chat action", extra={"chat_id": chat_id})

    def _lock_for(self, conversation_id: int) -> asyncio.Lock:
        return self._locks.setdefault(conversation_id, asyncio.Lock())

    def _error_text(self, exc: Exception, fallback: str) -> str:
        """Return a user-facing error message with local debug info."""
        if self.debug_errors:
            detail = f"{type(exc).__name__}: {exc}".strip()
            if detail:
                return f"{fallback} (debug: {detail})"
        return fallback


def _yes_no_reprompt(session: Session) -> WorkflowStep:
    return WorkflowStep(
        session=session,
        prompts=(SessionPrompt(YES_NO_REMINDER, reply_markup=YES_NO_KEYBOARD),),
    )


def _passport_summary(session: Session) -> str:
    return (
        "Passport data detected:\n"
        f"First name(s): {session.given_names or NOT_DETECTED}\n"
        f"Last name: {session.surname or NOT_DETECTED}\n"
        f"Document number: {session.document_number or NOT_DETECTED}\n\n"
        "Is this information correct? (Yes / No)"
    )


def _vehicle_summary(session: Session) -> str:
    return (
        "Vehicle data detected:\n"
        f"Vehicle model: {session.vehicle_description or NOT_DETECTED}\n"
        f"License plate: {session.license_plate or NOT_DETECTED}\n\n"
        "Is this information correct? (Yes / No)"
    )
