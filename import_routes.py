from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from typing import Optional
import logging

from card_import import (
    IMPORT_CONTENT_TYPES,
    ebay_records,
    import_records,
    map_rows,
    parse_column_mapping,
    parse_csv,
    parse_upload,
    read_headers,
    suggest_column_mapping,
)
from config import Settings
from dependencies import get_app_settings, get_card_repository
from errors import CardInventoryError
from schemas import ImportResponse, MappingSuggestion
from storage import CardRepository
from uploads import read_upload

logger = logging.getLogger(__name__)
router = APIRouter()

INVALID_IMPORT_TYPE = "Invalid file type. Only CSV and Excel files are allowed."


async def _read_import_file(file: Optional[UploadFile], settings: Settings) -> bytes:
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    return await read_upload(file, IMPORT_CONTENT_TYPES, settings.IMPORT_MAX_BYTES, INVALID_IMPORT_TYPE)


@router.post("", response_model=ImportResponse)
async def import_cards(
    file: Optional[UploadFile] = File(None),
    column_map: Optional[str] = Form(None, alias="columnMap"),
    settings: Settings = Depends(get_app_settings),
    repository: CardRepository = Depends(get_card_repository),
):
    """Import cards from a CSV or Excel file using a field-to-column mapping.

    Every row is validated and stored on its own; the response lists the
    outcome of each row.
    """
    content = await _read_import_file(file, settings)
    mapping = parse_column_mapping(column_map)
    rows = await run_in_threadpool(parse_upload, content, file.content_type, file.filename)
    logger.info(f"Importing {len(rows)} rows from {file.filename}")

    try:
        return await run_in_threadpool(import_records, repository, map_rows(rows, mapping))
    except CardInventoryError:
        raise
    except Exception as e:
        logger.error(f"Error importing cards: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to import cards"
        )


@router.post("/ebay", response_model=ImportResponse)
async def import_ebay_listings(
    file: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_app_settings),
    repository: CardRepository = Depends(get_card_repository),
):
    """Import the "Add" rows of an eBay bulk-listing CSV."""
    content = await _read_import_file(file, settings)
    rows = await run_in_threadpool(parse_csv, content, True)
    records = ebay_records(rows)
    logger.info(f"Importing {len(records)} eBay listings from {file.filename}")

    try:
        return await run_in_threadpool(import_records, repository, records)
    except Exception as e:
        logger.error(f"Error importing eBay listings: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to import cards"
        )


@router.post("/suggest-mapping", response_model=MappingSuggestion)
async def suggest_mapping(
    file: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_app_settings),
):
    """Read a file's headers and propose a column mapping for them."""
    content = await _read_import_file(file, settings)
    headers = await run_in_threadpool(read_headers, content, file.content_type, file.filename)
    return MappingSuggestion(headers=headers, column_map=suggest_column_mapping(headers))
