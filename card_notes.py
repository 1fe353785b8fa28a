"""Best-effort cleanup of free-text card notes.

Imported listings often carry another card's description in the notes
field. These helpers try to reduce such text to the card set or insert name
(e.g. ``"Historic Captains HC4"`` or ``"MLS 101"``). They are pattern
heuristics, not a parser:

    >>> clean_card_notes("MLS 101")
    'MLS 101'
    >>> clean_card_notes("2024-25 Topps UEFA Club Competitions Historic Captains HC4 Lionel Messi")
    'Historic Captains HC4'
    >>> clean_card_notes("2023 Panini Prizm Silver")
    'Prizm Silver'
    >>> clean_card_notes("Base")
    ''
"""

import re
from typing import Optional

_LEAGUE_NUMBER = re.compile(r"^(MLS|UEFA|EPL|NFL|NBA|MLB|NHL)\s+\d+$")
_INSERT_CODE = re.compile(
    r"^(Historic Captains|Magicians|Future Stars|Legends|Rookies|All-Stars|Champions|Autographs|Refractor)\s+\w+\d+$"
)
_COLLECTION = re.compile(
    r"((?:Historic Captains|Magicians|Future Stars|Legends|Rookies|All-Stars|Champions|Autographs|Refractor"
    r"|UEFA Club Competitions|MLS|Gold|Neon Green|Aqua)\s+(?:\w+\d+|HC\d+|[A-Z]+\d+|\d+))",
    re.IGNORECASE,
)
_TRAILING_LEAGUE_NUMBER = re.compile(r"((?:MLS|UEFA|EPL)\s+(?:\d+|[A-Z]+\d+))\s*$", re.IGNORECASE)
_MAKER_SET = re.compile(
    r"\d{4}(?:-\d{2})?\s+(?:Topps|Panini)(?:\s+(?:Topps|Panini))?\s+([^#]+?)(?:\s+(?:HC\d+|#\d+|\d+))?$",
    re.IGNORECASE,
)
_SPECIFIC_WORDS = [
    re.compile(r"\b(Captains\s+HC\d+)\b", re.IGNORECASE),
    re.compile(r"\b(MLS\s+\d+)\b", re.IGNORECASE),
    re.compile(r"\b(Finest\s+(?:MLS|MLB|NBA|NFL|NHL))\b", re.IGNORECASE),
    re.compile(r"\b(Gold\s+UEFA)\b", re.IGNORECASE),
    re.compile(r"\b(Magicians\s+\d+)\b", re.IGNORECASE),
    re.compile(r"\b(Future\s+Stars\s+\w+\d+)\b", re.IGNORECASE),
]

_LISTING_CONTAMINATION = ("Panini Select Premier League", "Topps Merlin", "Red Ice")
_SEASON_TOKEN = re.compile(r"\s+\d{4}-\d{2}")


def clean_card_notes(notes: Optional[str] = "") -> str:
    """Reduce a notes string to the card set or collection name.

    Returns an empty string when nothing trustworthy can be extracted.
    """
    if not notes:
        return ""

    stripped = notes.strip()
    if _LEAGUE_NUMBER.match(stripped) or _INSERT_CODE.match(stripped):
        return stripped

    for pattern in (_COLLECTION, _TRAILING_LEAGUE_NUMBER):
        match = pattern.search(notes)
        if match and match.group(1):
            return match.group(1).strip()

    match = _MAKER_SET.search(notes)
    if match and match.group(1):
        # A longer capture is usually another card's description.
        if len(match.group(1).split(" ")) <= 4:
            return match.group(1).strip()

    for pattern in _SPECIFIC_WORDS:
        match = pattern.search(notes)
        if match and match.group(1):
            return match.group(1).strip()

    words = re.split(r"\s+", notes)
    if 2 <= len(words) <= 4:
        return stripped
    if len(words) > 4:
        return " ".join(words[-3:]).strip()
    return ""


def cleanup_listing_notes(notes: Optional[str] = "") -> str:
    """Drop a second card description that leaked into listing features.

    >>> cleanup_listing_notes("Gold Refractor Panini Select Premier League 2022-23 Haaland")
    'Gold Refractor Panini Select Premier League'
    """
    if not notes:
        return ""
    if any(marker in notes for marker in _LISTING_CONTAMINATION):
        return _SEASON_TOKEN.split(notes)[0].strip()
    return notes
