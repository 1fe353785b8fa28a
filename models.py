from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    cards = relationship("Card", back_populates="owner")


class Card(Base):
    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    player_name = Column(String, index=True, nullable=False)
    sport = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    brand = Column(String, nullable=False)
    card_set = Column(String, default="")
    condition = Column(String, nullable=False)
    purchase_price = Column(Float, default=0)
    current_value = Column(Float, default=0)
    notes = Column(Text, default="")
    image_url = Column(String, default="")
    card_number = Column(String, default="")
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    owner = relationship("User", back_populates="cards")
