from typing import Any, Dict, Sequence

_LOCATION_ROOTS = ("body", "query", "path")


def format_validation_errors(errors: Sequence[Dict[str, Any]]) -> str:
    """Render pydantic errors as ``'<msg> at "<field>"; ...'``."""
    parts = []
    for error in errors:
        location = ".".join(
            str(part) for part in error.get("loc", ()) if part not in _LOCATION_ROOTS
        )
        message = error.get("msg", "Invalid value")
        parts.append(f'{message} at "{location}"' if location else message)
    return "; ".join(parts)


class CardInventoryError(Exception):
    """Base class for errors raised by the card inventory services."""


class InvalidFilterError(CardInventoryError):
    """A list filter could not be interpreted (e.g. a malformed year range)."""


class ImportFileError(CardInventoryError):
    """An uploaded CSV or spreadsheet could not be parsed."""


class ColumnMappingError(CardInventoryError):
    """The column mapping sent with an import is not a JSON object of strings."""


class RecognitionUnavailableError(CardInventoryError):
    """No vision model client is configured."""
