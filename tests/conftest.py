"""Pytest configuration and fixtures."""

import os
from datetime import datetime

# Point the app's engine at SQLite before any survai module creates it
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from survai.persistence.database import Base, get_db
from survai.persistence.models import *  # noqa: F401, F403
from survai.persistence.models import ClickTrack, Offer, Question, Survey

DESTINATION_TEMPLATE = "https://example.com/premium?click_id={click_id}&survey_id={survey_id}&ref=test"


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite engine with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session


@pytest.fixture
async def client(db_session):
    """Create a test client for the FastAPI app."""
    from survai.main import app

    app.dependency_overrides[get_db] = lambda: db_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def survey(db_session) -> Survey:
    survey = Survey(title="Test Tracking Survey", status="ACTIVE", config={})
    db_session.add(survey)
    await db_session.commit()
    return survey


@pytest.fixture
async def question(db_session, survey) -> Question:
    question = Question(
        survey_id=survey.id,
        type="CTA_OFFER",
        text="Which service interests you most?",
        config={"maxButtons": 3},
        order=1,
    )
    db_session.add(question)
    await db_session.commit()
    return question


@pytest.fixture
async def offer(db_session) -> Offer:
    offer = Offer(
        title="Premium Service Package",
        category="TECHNOLOGY",
        status="ACTIVE",
        destination_url=DESTINATION_TEMPLATE,
        pixel_url="https://tracking.example.com/conversion?click_id={click_id}",
        config={"payout": 50.0, "currency": "USD"},
        metrics={"totalClicks": 0, "epc": 0},
    )
    db_session.add(offer)
    await db_session.commit()
    return offer


@pytest.fixture
def click_payload(question, offer) -> dict:
    return {
        "sessionId": "test-tracking-session-123",
        "questionId": question.id,
        "offerId": offer.id,
        "buttonVariantId": "button-variant-123",
        "timestamp": 1_700_000_000_000,
        "userAgent": "Mozilla/5.0 Test Browser",
        "ipAddress": "192.168.1.1",
    }


@pytest.fixture
def add_clicks(db_session, question):
    """Factory inserting click records for an offer.

    The first ``len(converted_revenues)`` clicks are marked converted with
    those revenues.
    """

    async def _add_clicks(
        offer: Offer, count: int, converted_revenues: tuple = ()
    ) -> list[ClickTrack]:
        return await _insert_clicks(db_session, offer, question, count, converted_revenues)

    return _add_clicks


async def _insert_clicks(
    session: AsyncSession,
    offer: Offer,
    question: Question,
    count: int,
    converted_revenues: tuple,
) -> list[ClickTrack]:
    records = []
    for i in range(count):
        converted = i < len(converted_revenues)
        record = ClickTrack(
            click_id=f"{offer.id[:8]}-click-{i}",
            session_id=f"session-{i}",
            question_id=question.id,
            offer_id=offer.id,
            button_variant_id=f"variant-{i}",
            timestamp=datetime.utcnow(),
            status="VALID",
            converted=converted,
            revenue=converted_revenues[i] if converted else None,
            converted_at=datetime.utcnow() if converted else None,
        )
        session.add(record)
        records.append(record)
    await session.commit()
    return records


@pytest.fixture
async def other_offer(db_session) -> Offer:
    offer = Offer(
        title="Budget Plan",
        status="ACTIVE",
        destination_url="https://partner.example.org/landing/{click_id}?aff=42",
    )
    db_session.add(offer)
    await db_session.commit()
    return offer


@pytest.fixture
async def file_engine(tmp_path):
    """SQLite file database, for tests that need independent connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tracking.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()
