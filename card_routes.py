from fastapi import APIRouter, Depends, HTTPException, Response, status
from typing import List
import logging

from card_export import EXPORT_FILENAME, export_cards_csv
from dependencies import card_filter, get_card_repository, get_price_estimator
from errors import CardInventoryError
from price_service import PriceEstimator
from schemas import (
    CardCreate,
    CardFilter,
    CardRead,
    CardUpdate,
    CollectionStats,
    DeleteAllResponse,
    PriceAnalysis,
)
from storage import CardRepository

logger = logging.getLogger(__name__)
router = APIRouter()

CARD_NOT_FOUND = "Card not found"


@router.get("", response_model=List[CardRead])
def list_cards(
    filters: CardFilter = Depends(card_filter),
    repository: CardRepository = Depends(get_card_repository),
):
    """List cards, filtered and sorted by the query parameters."""
    try:
        return repository.list(filters)
    except CardInventoryError:
        raise
    except Exception as e:
        logger.error(f"Error fetching cards: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch cards"
        )


@router.get("/export")
def export_cards(
    filters: CardFilter = Depends(card_filter),
    repository: CardRepository = Depends(get_card_repository),
):
    """Download the (filtered) collection as CSV."""
    try:
        content = export_cards_csv(repository.list(filters))
    except CardInventoryError:
        raise
    except Exception as e:
        logger.error(f"Error exporting cards: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to export cards"
        )
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.get("/stats", response_model=CollectionStats)
def collection_stats(repository: CardRepository = Depends(get_card_repository)):
    try:
        return repository.summarize()
    except Exception as e:
        logger.error(f"Error computing collection stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute collection stats"
        )


@router.get("/{card_id}", response_model=CardRead)
def get_card(card_id: int, repository: CardRepository = Depends(get_card_repository)):
    try:
        card = repository.get(card_id)
    except Exception as e:
        logger.error(f"Error fetching card {card_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch card"
        )
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CARD_NOT_FOUND)
    return card


@router.post("", response_model=CardRead, status_code=status.HTTP_201_CREATED)
def create_card(card: CardCreate, repository: CardRepository = Depends(get_card_repository)):
    """Create a card entry manually."""
    try:
        return repository.create(card)
    except Exception as e:
        logger.error(f"Error creating card: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create card"
        )


@router.patch("/{card_id}", response_model=CardRead)
def update_card(card_id: int, changes: CardUpdate, repository: CardRepository = Depends(get_card_repository)):
    """Update only the fields present in the request body."""
    try:
        card = repository.update(card_id, changes)
    except Exception as e:
        logger.error(f"Error updating card {card_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update card"
        )
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CARD_NOT_FOUND)
    return card


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_card(card_id: int, repository: CardRepository = Depends(get_card_repository)):
    try:
        deleted = repository.delete(card_id)
    except Exception as e:
        logger.error(f"Error deleting card {card_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete card"
        )
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CARD_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", response_model=DeleteAllResponse)
def delete_all_cards(repository: CardRepository = Depends(get_card_repository)):
    """Bulk delete every card in the collection."""
    try:
        count = repository.delete_all()
    except Exception as e:
        logger.error(f"Error deleting all cards: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete all cards"
        )
    return DeleteAllResponse(message=f"Successfully deleted {count} cards", count=count)


@router.get("/{card_id}/price", response_model=PriceAnalysis)
def card_price(
    card_id: int,
    repository: CardRepository = Depends(get_card_repository),
    estimator: PriceEstimator = Depends(get_price_estimator),
):
    """Price research for a stored card, queried by its own details."""
    try:
        card = repository.get(card_id)
    except Exception as e:
        logger.error(f"Error fetching card price data: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch card price data"
        )
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CARD_NOT_FOUND)

    analysis = estimator.analyze_card(card)
    logger.info(f"Fetched price data for card #{card_id}: {analysis.search_query}")
    return analysis
