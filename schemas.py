from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from card_notes import clean_card_notes

FILTER_ALL = "all"

SPORT_OPTIONS = ["soccer", "baseball", "basketball", "football", "hockey", "other"]
CONDITION_OPTIONS = ["raw", "psa10", "psa9", "psa8", "psa7", "bgs95", "bgs9", "bgs85"]
SORT_OPTIONS = [
    "recent",
    "playerNameAsc",
    "playerNameDesc",
    "valueDesc",
    "valueAsc",
    "yearDesc",
    "yearAsc",
]

DEFAULT_SPORT = SPORT_OPTIONS[-1]
UNGRADED_CONDITION = CONDITION_OPTIONS[0]


class CamelModel(BaseModel):
    """Base model exposing camelCase JSON while accepting snake_case too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CardCreate(CamelModel):
    player_name: str = Field(..., min_length=1)
    sport: str = DEFAULT_SPORT
    year: int
    brand: str
    condition: str
    card_set: str = ""
    card_number: str = ""
    purchase_price: float = Field(0, ge=0, allow_inf_nan=False)
    current_value: float = Field(0, ge=0, allow_inf_nan=False)
    notes: str = ""
    image_url: str = ""
    user_id: Optional[int] = None


_NOT_NULL_FIELDS = (
    "player_name",
    "sport",
    "year",
    "brand",
    "condition",
    "card_set",
    "card_number",
    "purchase_price",
    "current_value",
    "notes",
    "image_url",
)


class CardUpdate(CamelModel):
    """Partial card payload; only the fields present in the request change."""

    player_name: Optional[str] = Field(None, min_length=1)
    sport: Optional[str] = None
    year: Optional[int] = None
    brand: Optional[str] = None
    condition: Optional[str] = None
    card_set: Optional[str] = None
    card_number: Optional[str] = None
    purchase_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    current_value: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    notes: Optional[str] = None
    image_url: Optional[str] = None
    user_id: Optional[int] = None

    @field_validator(*_NOT_NULL_FIELDS, mode="before")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Expected a value, received null")
        return value


class CardRead(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    player_name: str
    sport: str
    year: int
    brand: str
    card_set: Optional[str] = ""
    condition: str
    purchase_price: Optional[float] = 0
    current_value: Optional[float] = 0
    notes: Optional[str] = ""
    image_url: Optional[str] = ""
    card_number: Optional[str] = ""
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @computed_field(alias="displayNotes")
    @property
    def display_notes(self) -> str:
        return clean_card_notes(self.notes or "")


class CardFilter(BaseModel):
    search: Optional[str] = None
    sport: Optional[str] = None
    year: Optional[str] = None
    brand: Optional[str] = None
    condition: Optional[str] = None
    sort_by: Optional[str] = None


class DeleteAllResponse(BaseModel):
    message: str
    count: int


class CollectionStats(CamelModel):
    total_cards: int
    total_value: float
    total_purchase_cost: float
    profit_loss_percent: Optional[float] = None
    sport_counts: Dict[str, int] = {}


class SoldItem(CamelModel):
    title: str
    price: float
    date: str
    link: str
    image_url: Optional[str] = None


class PriceAnalysis(CamelModel):
    items: List[SoldItem] = []
    average_price: float = 0
    min_price: float = 0
    max_price: float = 0
    median_price: float = 0
    total_results: int = 0
    search_query: str


class ImportRowResult(BaseModel):
    success: bool
    data: Dict[str, Any]
    error: Optional[str] = None


class ImportResponse(BaseModel):
    message: str
    results: List[ImportRowResult]


class MappingSuggestion(CamelModel):
    headers: List[str]
    column_map: Dict[str, str]


class RecognizedCard(CamelModel):
    player_name: str = ""
    sport: str = DEFAULT_SPORT
    year: int
    brand: str = ""
    card_set: str = ""
    card_number: str = ""
    condition: str = "new"
    purchase_price: float = 0
    notes: str = ""
    image_url: str = ""


class RecognitionResponse(BaseModel):
    message: str
    card: RecognizedCard


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
