from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Optional
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from card_routes import router as card_router
from config import Settings, get_settings
from database import build_engine, build_session_factory, init_db
from errors import (
    CardInventoryError,
    ColumnMappingError,
    ImportFileError,
    InvalidFilterError,
    RecognitionUnavailableError,
    format_validation_errors,
)
from image_recognition import CardRecognizer, build_recognizer
from import_routes import router as import_router
from price_service import PriceEstimator
from research_routes import router as research_router

# Configure logging
logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidFilterError: status.HTTP_400_BAD_REQUEST,
    ImportFileError: status.HTTP_400_BAD_REQUEST,
    ColumnMappingError: status.HTTP_400_BAD_REQUEST,
    RecognitionUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting card inventory API")
    init_db(app.state.engine)
    yield
    logger.info("Shutting down card inventory API")
    app.state.engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    engine=None,
    recognizer: Optional[CardRecognizer] = None,
    price_estimator: Optional[PriceEstimator] = None,
) -> FastAPI:
    """Build the API with its collaborators.

    Anything not passed in is constructed from ``settings``.
    """
    settings = settings or get_settings()

    app = FastAPI(title="Card Inventory", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine if engine is not None else build_engine(settings.DATABASE_URL)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.recognizer = recognizer if recognizer is not None else build_recognizer(
        settings.ANTHROPIC_API_KEY, settings.VISION_MODEL, settings.VISION_MAX_TOKENS
    )
    app.state.price_estimator = price_estimator or PriceEstimator(settings.PRICE_SAMPLE_LIMIT)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(card_router, prefix="/api/cards", tags=["cards"])
    app.include_router(import_router, prefix="/api/import", tags=["import"])
    app.include_router(research_router, prefix="/api", tags=["research"])

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request, exc):
        """Report malformed requests as 400 with a readable message."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": f"Validation error: {format_validation_errors(exc.errors())}"}
        )

    @app.exception_handler(CardInventoryError)
    async def inventory_exception_handler(request, exc):
        status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code >= 500:
            logger.error(f"{type(exc).__name__}: {str(exc)}")
        return JSONResponse(status_code=status_code, content={"message": str(exc)})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests."""
        logger.info(f"Request: {request.method} {request.url}")
        response = await call_next(request)
        logger.info(f"Response: {response.status_code}")
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
