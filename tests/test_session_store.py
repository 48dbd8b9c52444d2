"""Tests for the in-memory session store and session model."""

from concurrent.futures import ThreadPoolExecutor

from insurance_bot.domain.documents import ExtractionRecord
from insurance_bot.domain.sessions import Session, WorkflowState
from insurance_bot.services.session_store import InMemorySessionStore


def test_get_or_create_returns_same_session() -> None:
    store = InMemorySessionStore()

    first = store.get_or_create(42)
    second = store.get_or_create(42)

    assert first is second
    assert first.state is WorkflowState.START
    assert store._sessions == {42: first}


def test_upsert_replaces_session() -> None:
    store = InMemorySessionStore()
    session = store.get_or_create(7)

    store.upsert(session.with_state(WorkflowState.COMPLETED))

    assert store.get_or_create(7).state is WorkflowState.COMPLETED
    assert 8 not in store._sessions


def test_concurrent_get_or_create_creates_one_session() -> None:
    store = InMemorySessionStore()

    with ThreadPoolExecutor(max_workers=8) as pool:
        sessions = list(pool.map(lambda _: store.get_or_create(1), range(50)))

    assert all(session is sessions[0] for session in sessions)


def test_session_merges_and_clears_document_halves() -> None:
    session = Session(conversation_id=1)
    record = ExtractionRecord(
        given_names="ANA",
        surname="DOE",
        document_number="X1",
        vehicle_description="ignored",
    )

    with_passport = session.with_passport(record)
    assert with_passport.given_names == "ANA"
    assert with_passport.vehicle_description is None
    assert with_passport.holder_name == "ANA DOE"

    with_vehicle = with_passport.with_vehicle(
        ExtractionRecord(vehicle_description="Toyota", license_plate="AA1")
    )
    cleared = with_vehicle.clear_passport()
    assert cleared.given_names is None
    assert cleared.surname is None
    assert cleared.document_number is None
    assert cleared.license_plate == "AA1"
    assert with_vehicle.clear_vehicle().vehicle_description is None
    assert with_vehicle.reset() == Session(conversation_id=1)
