from typing import Collection

from fastapi import HTTPException, UploadFile, status


async def read_upload(file: UploadFile, allowed_types: Collection[str], max_bytes: int, type_error: str) -> bytes:
    """Read an uploaded file after checking its MIME type and size."""
    if file.content_type not in allowed_types:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=type_error)

    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File too large (max {max_bytes // (1024 * 1024)}MB)",
        )
    return content
