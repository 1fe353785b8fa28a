from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from config import Settings
from dependencies import get_app_settings, get_price_estimator, get_recognizer
from image_recognition import IMAGE_CONTENT_TYPES, CardRecognizer
from price_service import PriceEstimator
from schemas import PriceAnalysis, RecognitionResponse
from uploads import read_upload

logger = logging.getLogger(__name__)
router = APIRouter()

INVALID_IMAGE_TYPE = "Invalid file type. Only JPEG, PNG, GIF and WEBP images are allowed."


@router.get("/prices", response_model=PriceAnalysis)
def search_prices(query: Optional[str] = None, estimator: PriceEstimator = Depends(get_price_estimator)):
    """Synthetic sold-listing prices for a free-text search."""
    if not query:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query is required"
        )
    logger.info(f"Processing price search for: {query}")
    return estimator.analyze(query)


@router.post("/recognize-card", response_model=RecognitionResponse)
async def recognize_card(
    image: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_app_settings),
    recognizer: CardRecognizer = Depends(get_recognizer),
):
    """Fill in card details from a photo of the card."""
    if image is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image uploaded")
    content = await read_upload(image, IMAGE_CONTENT_TYPES, settings.IMAGE_MAX_BYTES, INVALID_IMAGE_TYPE)
    logger.info(f"Processing card image recognition request ({len(content)} bytes, {image.content_type})")

    try:
        result = await run_in_threadpool(recognizer.recognize, content, image.content_type)
    except Exception as e:
        logger.error(f"Error recognizing card from image: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process card image"
        )

    if not result.success:
        partial = result.card.model_dump(by_alias=True) if result.card else None
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            content={
                "message": result.error or "Failed to recognize card from image",
                "partialData": partial,
            },
        )

    return RecognitionResponse(message="Card successfully recognized from image", card=result.card)
