"""Synthetic sold-listing price estimates.

Nothing here talks to a marketplace. The estimator fabricates a plausible
set of sold listings from the search string itself, so the same query
always yields the same analysis.
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from functools import reduce
from typing import Callable, Iterable, List, Optional

from models import Card
from schemas import PriceAnalysis, SoldItem

logger = logging.getLogger(__name__)

BASE_PRICE = 5
DEFAULT_SAMPLE_LIMIT = 10

# Each group of terms adds its bonus once when any of them appears in the query.
VALUE_SIGNALS = [
    (("rookie", "rc"), 20),
    (("autograph", "auto"), 50),
    (("1st", "first edition"), 30),
    (("refractor", "prizm"), 15),
    (("patch", "jersey"), 25),
    (("psa", "bgs"), 40),
    (("parallel", "numbered"), 20),
    (("ssp", "rare"), 35),
]

CONDITION_TERMS = ["Mint", "NM", "NM-MT", "VG-EX", "GD"]
EXTRA_TERMS = ["Shipped in Top Loader", "w/ One Touch", "HOT!", "LOOK"]
SOLD_DATES = ["May 1", "May 2", "May 3", "May 4", "May 5", "May 6", "May 7"]

LISTING_URL = "https://www.ebay.com/itm/{}"
LISTING_IMAGE_URL = "https://i.ebayimg.com/images/g/{}/s-l1600.jpg"


def query_seed(search_query: str) -> int:
    """Sum of the query's UTF-16 code units."""
    encoded = search_query.encode("utf-16-le")
    return sum(
        int.from_bytes(encoded[i:i + 2], "little") for i in range(0, len(encoded), 2)
    )


def seeded_random(seed: int) -> Callable[[int, int], int]:
    """Return ``rand(lo, hi)`` drawing integers in ``[lo, hi]`` from ``sin(seed)``.

    Every call advances the seed by one.
    """

    def rand(lo: int, hi: int) -> int:
        nonlocal seed
        x = math.sin(seed) * 10000
        seed += 1
        fraction = x - math.floor(x)
        return math.floor(fraction * (hi - lo + 1) + lo)

    return rand


def base_price_for(search_query: str) -> float:
    terms = search_query.lower()
    price = BASE_PRICE
    for keywords, bonus in VALUE_SIGNALS:
        if any(keyword in terms for keyword in keywords):
            price += bonus
    return price


def round_price(value: float) -> float:
    """Round to cents with exact halves going up, e.g. 0.125 -> 0.13."""
    # Decimal(float) is the exact binary value, so 2.675 (really 2.67499...) stays 2.67.
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def running_total(values: Iterable[float]) -> float:
    """Left-to-right float sum; ``sum()`` compensates rounding error and can differ."""
    return reduce(lambda total, value: total + value, values, 0.0)


def median(values: Iterable[float]) -> float:
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2
    return ordered[middle]


def generate_sold_items(search_query: str) -> List[SoldItem]:
    """Fabricate the full, untruncated list of sold listings for a query."""
    rand = seeded_random(query_seed(search_query))

    base_price = base_price_for(search_query)
    base_price = base_price * (1 + rand(-20, 20) / 100)

    item_count = rand(5, 15)
    items = []
    for _ in range(item_count):
        price = base_price + base_price * (rand(-40, 40) / 100)
        condition = CONDITION_TERMS[rand(0, len(CONDITION_TERMS) - 1)]
        extra = EXTRA_TERMS[rand(0, len(EXTRA_TERMS) - 1)] if rand(0, 1) == 1 else ""
        items.append(
            SoldItem(
                title=f"{search_query} - {condition} {extra}".strip(),
                price=round_price(price),
                date=SOLD_DATES[rand(0, len(SOLD_DATES) - 1)],
                link=LISTING_URL.format(rand(100000000, 999999999)),
                image_url=LISTING_IMAGE_URL.format(rand(10000, 99999)),
            )
        )
    return items


def estimate_prices(search_query: str, sample_limit: int = DEFAULT_SAMPLE_LIMIT) -> PriceAnalysis:
    """Build a price analysis for ``search_query``.

    Statistics cover every generated listing; only the first ``sample_limit``
    listings are returned. Never raises: on any error an empty analysis is
    returned instead.
    """
    logger.info(f"Generating price analysis for \"{search_query}\"")
    try:
        items = generate_sold_items(search_query)
        prices = [item.price for item in items]
        return PriceAnalysis(
            items=items[:sample_limit],
            average_price=running_total(prices) / len(prices),
            min_price=min(prices),
            max_price=max(prices),
            median_price=median(prices),
            total_results=len(items),
            search_query=search_query,
        )
    except Exception as e:
        logger.error(f"Error generating price analysis: {str(e)}")
        return PriceAnalysis(search_query=search_query)


def build_card_search_query(card: Card) -> str:
    """Derive a research query from a stored card's own fields."""
    parts = []
    if card.player_name:
        parts.append(card.player_name)
    if card.card_set:
        parts.append(card.card_set)
    if card.card_number:
        parts.append(f"#{card.card_number}")
    if card.notes:
        parts.append(card.notes)
    if card.year:
        parts.append(str(card.year))
    if card.brand:
        parts.append(card.brand)
    # dict keeps first-seen order
    return " ".join(dict.fromkeys(parts))


class PriceEstimator:
    """Injectable front for :func:`estimate_prices`."""

    def __init__(self, sample_limit: Optional[int] = None):
        self.sample_limit = sample_limit or DEFAULT_SAMPLE_LIMIT

    def analyze(self, search_query: str) -> PriceAnalysis:
        return estimate_prices(search_query, self.sample_limit)

    def analyze_card(self, card: Card) -> PriceAnalysis:
        return self.analyze(build_card_search_query(card))
