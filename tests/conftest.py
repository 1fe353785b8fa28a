import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import build_engine, build_session_factory, init_db
from image_recognition import CardRecognizer
from main import create_app
from price_service import PriceEstimator


def text_message(text):
    """A stand-in for an Anthropic ``Message`` holding one text block."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite://", ANTHROPIC_API_KEY=None, CORS_ORIGINS=["*"])


@pytest.fixture
def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = build_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def vision_client():
    return MagicMock()


@pytest.fixture
def recognizer(vision_client):
    return CardRecognizer(vision_client, model="test-model")


@pytest.fixture
def app(settings, engine, recognizer):
    return create_app(
        settings=settings,
        engine=engine,
        recognizer=recognizer,
        price_estimator=PriceEstimator(settings.PRICE_SAMPLE_LIMIT),
    )


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_card(client):
    """Create a card through the API and return its JSON."""
    def _make_card(**overrides):
        payload = {
            "playerName": "Lionel Messi",
            "sport": "soccer",
            "year": 2023,
            "brand": "Topps",
            "cardSet": "Chrome",
            "condition": "raw",
            "purchasePrice": 10,
            "currentValue": 15,
            "notes": "",
            "cardNumber": "10",
        }
        payload.update(overrides)
        response = client.post("/api/cards", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _make_card


def column_map(**fields):
    """JSON ``columnMap`` form value with every unlisted field unmapped."""
    mapping = {
        "playerName": "none",
        "sport": "none",
        "year": "none",
        "brand": "none",
        "condition": "none",
        "purchasePrice": "none",
        "cardSet": "none",
        "cardNumber": "none",
        "notes": "none",
        "imageUrl": "none",
    }
    mapping.update(fields)
    return json.dumps(mapping)
