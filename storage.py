"""Card and user persistence on top of a SQLAlchemy session."""

import logging
from collections import Counter
from typing import List, Optional, Tuple

from sqlalchemy import and_, asc, delete, desc, or_, select
from sqlalchemy.orm import Session

from errors import InvalidFilterError
from models import Card, User
from schemas import FILTER_ALL, SORT_OPTIONS, CardCreate, CardFilter, CardUpdate, CollectionStats, UserCreate

logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "recent": (desc(Card.created_at), desc(Card.id)),
    "playerNameAsc": (asc(Card.player_name),),
    "playerNameDesc": (desc(Card.player_name),),
    "valueDesc": (desc(Card.current_value),),
    "valueAsc": (asc(Card.current_value),),
    "yearDesc": (desc(Card.year),),
    "yearAsc": (asc(Card.year),),
}
DEFAULT_SORT = (desc(Card.id),)


def parse_year_filter(value: str) -> Tuple[int, int]:
    """Turn ``"2015"`` or ``"2010-2019"`` into an inclusive ``(start, end)``."""
    text = value.strip()
    try:
        if "-" in text:
            start, end = text.split("-", 1)
            return int(start), int(end)
        year = int(text)
    except ValueError:
        raise InvalidFilterError(f"Invalid year filter: {value}")
    return year, year


def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value != FILTER_ALL


class CardRepository:
    def __init__(self, session: Session):
        self.session = session

    def list(self, filters: Optional[CardFilter] = None) -> List[Card]:
        """Return cards matching every supplied filter."""
        filters = filters or CardFilter()
        conditions = []

        if filters.search:
            conditions.append(
                or_(
                    Card.player_name.icontains(filters.search, autoescape=True),
                    Card.brand.icontains(filters.search, autoescape=True),
                    Card.card_set.icontains(filters.search, autoescape=True),
                    Card.notes.icontains(filters.search, autoescape=True),
                )
            )
        if _is_set(filters.sport):
            conditions.append(Card.sport == filters.sport)
        if _is_set(filters.year):
            start, end = parse_year_filter(filters.year)
            if start == end:
                conditions.append(Card.year == start)
            else:
                conditions.append(and_(Card.year >= start, Card.year <= end))
        if _is_set(filters.brand):
            conditions.append(Card.brand == filters.brand)
        if _is_set(filters.condition):
            conditions.append(Card.condition == filters.condition)

        query = select(Card)
        if conditions:
            query = query.where(and_(*conditions))
        sort = SORT_ORDERS[filters.sort_by] if filters.sort_by in SORT_OPTIONS else DEFAULT_SORT
        query = query.order_by(*sort)
        return list(self.session.scalars(query))

    def get(self, card_id: int) -> Optional[Card]:
        return self.session.get(Card, card_id)

    def create(self, data: CardCreate) -> Card:
        card = Card(**data.model_dump())
        self.session.add(card)
        self.session.commit()
        self.session.refresh(card)
        logger.info(f"Created card {card.id}: {card.player_name}")
        return card

    def update(self, card_id: int, data: CardUpdate) -> Optional[Card]:
        """Apply only the fields present in ``data``."""
        card = self.get(card_id)
        if card is None:
            return None
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return card
        for field, value in changes.items():
            setattr(card, field, value)
        self.session.commit()
        self.session.refresh(card)
        logger.info(f"Updated card {card_id}: {sorted(changes)}")
        return card

    def delete(self, card_id: int) -> bool:
        card = self.get(card_id)
        if card is None:
            return False
        self.session.delete(card)
        self.session.commit()
        logger.info(f"Deleted card {card_id}")
        return True

    def delete_all(self) -> int:
        """Remove every card and return how many rows the delete touched."""
        result = self.session.execute(delete(Card))
        self.session.commit()
        count = result.rowcount or 0
        logger.info(f"Deleted {count} cards")
        return count

    def summarize(self) -> CollectionStats:
        cards = self.list()
        total_value = sum(card.current_value or 0 for card in cards)
        total_cost = sum(card.purchase_price or 0 for card in cards)
        profit_loss = None
        if total_cost > 0:
            profit_loss = round((total_value - total_cost) / total_cost * 100, 1)
        return CollectionStats(
            total_cards=len(cards),
            total_value=round(total_value, 2),
            total_purchase_cost=round(total_cost, 2),
            profit_loss_percent=profit_loss,
            sport_counts=dict(Counter(card.sport for card in cards)),
        )


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return self.session.scalars(select(User).where(User.username == username)).first()

    def create(self, data: UserCreate) -> User:
        user = User(username=data.username, password=data.password)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user
