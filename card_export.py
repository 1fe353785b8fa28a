from typing import Iterable

import pandas as pd

from models import Card

EXPORT_FILENAME = "card-inventory.csv"
EXPORT_COLUMNS = [
    "playerName",
    "sport",
    "year",
    "brand",
    "cardSet",
    "condition",
    "purchasePrice",
    "currentValue",
    "notes",
    "cardNumber",
]
_FORMULA_PREFIXES = ("=", "+", "-", "@")


def _sanitize(value):
    # Spreadsheet apps execute cells that start with a formula character.
    if isinstance(value, str) and value.startswith(_FORMULA_PREFIXES):
        return "'" + value
    return value


def export_cards_csv(cards: Iterable[Card]) -> str:
    """Render cards as CSV text with one row per card."""
    rows = [
        {
            "playerName": card.player_name,
            "sport": card.sport,
            "year": card.year,
            "brand": card.brand,
            "cardSet": card.card_set,
            "condition": card.condition,
            "purchasePrice": card.purchase_price,
            "currentValue": card.current_value,
            "notes": card.notes,
            "cardNumber": card.card_number,
        }
        for card in cards
    ]
    rows = [{key: _sanitize(value) for key, value in row.items()} for row in rows]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS).to_csv(index=False)
