import base64
import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import anthropic

from schemas import DEFAULT_SPORT, RecognizedCard

logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
DEFAULT_CONDITION = "new"

SYSTEM_PROMPT = """You are a trading card recognition expert.
Analyze the image of the trading card and extract the following information:
- Player name
- Sport (baseball, basketball, football, hockey, soccer, etc.)
- Card year
- Card brand (manufacturer like Topps, Panini, Upper Deck, etc.)
- Card set name
- Card number (if visible)
- Condition (assume "new" if not clearly damaged)

If any information is not visible or cannot be determined, leave it blank.
Return the information as valid JSON with these exact keys: playerName, sport, year, brand, cardSet, cardNumber, condition.
ONLY return the JSON, nothing else."""

USER_PROMPT = "Analyze this trading card and extract the information as JSON as specified in your instructions."

DESCRIPTION_PROMPT = """Generate a brief, professional description for this trading card:
Player: {player_name}
Sport: {sport}
Year: {year}
Brand: {brand}
Set: {card_set}
Card Number: {card_number}

Please keep it factual and focused on what makes this card noteworthy."""

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")
_LEADING_YEAR = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class RecognitionResult:
    success: bool
    card: Optional[RecognizedCard] = None
    error: Optional[str] = None


def media_type_for(content_type: str) -> str:
    """Map an upload's MIME type onto one the vision API accepts."""
    lowered = (content_type or "").lower()
    if "jpeg" in lowered or "jpg" in lowered:
        return "image/jpeg"
    if "png" in lowered:
        return "image/png"
    if "gif" in lowered:
        return "image/gif"
    if "webp" in lowered:
        return "image/webp"
    return "image/jpeg"


def extract_json(text: str) -> Dict[str, Any]:
    """Parse the model's answer, tolerating prose around the JSON object."""
    try:
        data = json.loads(text)
    except ValueError:
        match = _JSON_BLOCK.search(text)
        if not match:
            raise ValueError("Could not parse JSON from response")
        data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("Could not parse JSON from response")
    return data


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _year(value: Any) -> int:
    match = _LEADING_YEAR.match(_text(value))
    if match:
        return int(match.group(1))
    return datetime.now().year


def card_from_answer(data: Dict[str, Any]) -> RecognizedCard:
    card_set = _text(data.get("cardSet"))
    card_number = _text(data.get("cardNumber"))
    return RecognizedCard(
        player_name=_text(data.get("playerName")),
        sport=_text(data.get("sport")).lower() or DEFAULT_SPORT,
        year=_year(data.get("year")),
        brand=_text(data.get("brand")),
        card_set=card_set,
        card_number=card_number,
        condition=_text(data.get("condition")).lower() or DEFAULT_CONDITION,
        purchase_price=0,
        notes=f"{card_set} {card_number}".strip(),
        image_url="",
    )


def _response_text(message: Any) -> str:
    for block in getattr(message, "content", None) or []:
        if getattr(block, "type", None) == "text":
            return block.text
    return ""


class CardRecognizer:
    """Identifies cards in photos through a vision-capable Claude model."""

    def __init__(self, client, model: str, max_tokens: int = 1024):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def identify_card(self, image: bytes, content_type: str) -> RecognitionResult:
        """Ask the model for the card's attributes.

        A card without a player name counts as a failure, but the fields that
        were read are still returned so they can be completed by hand.
        """
        if not image:
            return RecognitionResult(success=False, error="No image data provided")

        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type_for(content_type),
                                    "data": base64.standard_b64encode(image).decode("utf-8"),
                                },
                            },
                            {"type": "text", "text": USER_PROMPT},
                        ],
                    }
                ],
            )
            card = card_from_answer(extract_json(_response_text(message) or "{}"))
        except Exception as e:
            logger.error(f"Error identifying card from image: {str(e)}")
            return RecognitionResult(success=False, error=f"Error identifying card: {str(e)}")

        if not card.player_name:
            return RecognitionResult(
                success=False,
                card=card,
                error="Could not identify player name from the image. Please enter card details manually.",
            )
        return RecognitionResult(success=True, card=card)

    def generate_description(self, card: RecognizedCard) -> str:
        """Short notes text for a recognized card; empty string on any failure."""
        prompt = DESCRIPTION_PROMPT.format(
            player_name=card.player_name,
            sport=card.sport,
            year=card.year,
            brand=card.brand,
            card_set=card.card_set or "Unknown",
            card_number=card.card_number or "Unknown",
        )
        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
            return _response_text(message).strip()
        except Exception as e:
            logger.error(f"Error generating card description: {str(e)}")
            return ""

    def recognize(self, image: bytes, content_type: str) -> RecognitionResult:
        """Identify the card and, when enough is known, describe it in the notes."""
        result = self.identify_card(image, content_type)
        card = result.card
        if result.success and card.player_name and card.sport and card.year:
            description = self.generate_description(card)
            if description:
                card.notes = description
        return result


def build_recognizer(api_key: Optional[str], model: str, max_tokens: int = 1024) -> Optional[CardRecognizer]:
    """Recognizer backed by the Anthropic SDK, or None without an API key."""
    if not api_key:
        logger.warning("ANTHROPIC_API_KEY is not set. Card recognition is disabled.")
        return None
    return CardRecognizer(anthropic.Anthropic(api_key=api_key), model, max_tokens)
