"""FastAPI dependencies resolving the collaborators stored on ``app.state``."""

from typing import Iterator, Optional

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from config import Settings
from errors import RecognitionUnavailableError
from image_recognition import CardRecognizer
from price_service import PriceEstimator
from schemas import CardFilter
from storage import CardRepository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Iterator[Session]:
    """One session per request, closed when the response is done."""
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_card_repository(session: Session = Depends(get_db)) -> CardRepository:
    return CardRepository(session)


def get_price_estimator(request: Request) -> PriceEstimator:
    return request.app.state.price_estimator


def get_recognizer(request: Request) -> CardRecognizer:
    recognizer = request.app.state.recognizer
    if recognizer is None:
        raise RecognitionUnavailableError("Card recognition is not configured")
    return recognizer


def card_filter(
    search: Optional[str] = None,
    sport: Optional[str] = None,
    year: Optional[str] = None,
    brand: Optional[str] = None,
    condition: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
) -> CardFilter:
    return CardFilter(
        search=search,
        sport=sport,
        year=year,
        brand=brand,
        condition=condition,
        sort_by=sort_by,
    )
