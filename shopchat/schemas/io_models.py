"""Pydantic models for API I/O and pipeline contracts.

These are the types passed between the controller, the intent extractor,
the context retriever and the response generator, plus the read models the
repositories hand back instead of live ORM rows.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Intent vocabulary the extractor prompt offers the model. Labels outside it
# are passed through untouched.
PRODUCT_SEARCH = "product_search"
ORDER_INQUIRY = "order_inquiry"
GENERAL_HELP = "general_help"
COMPLAINT = "complaint"
RETURN_REQUEST = "return_request"
INTENTS = (PRODUCT_SEARCH, ORDER_INQUIRY, GENERAL_HELP, COMPLAINT, RETURN_REQUEST)

SENDER_USER = "user"
SENDER_AI = "ai"
SENDERS = (SENDER_USER, SENDER_AI)


def _as_utc(value: Any) -> Any:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cost: float
    category: str
    name: str
    brand: str
    retail_price: float
    department: str
    sku: str
    distribution_center_id: int


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: int
    user_id: int
    status: str
    gender: str
    num_of_item: int
    created_at: datetime
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    conversation_id: str
    user_id: str
    title: str
    title_set: bool = False
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class MessageMetadata(BaseModel):
    query_type: Optional[str] = None
    entities_extracted: List[str] = Field(default_factory=list)
    response_time: Optional[int] = None


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message_id: str
    conversation_id: str
    sender: str
    content: str
    timestamp: datetime
    metadata: Optional[MessageMetadata] = Field(default=None, validation_alias="meta")

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class HistoryMessage(BaseModel):
    """What the history endpoint exposes for each message."""
    sender: str
    content: str
    timestamp: datetime
    metadata: Optional[MessageMetadata] = None


class PriceRange(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class Entities(BaseModel):
    """Structured fields pulled out of the user's text; all optional."""
    model_config = ConfigDict(extra="ignore")

    category: Optional[str] = None
    brand: Optional[str] = None
    department: Optional[str] = None
    name: Optional[str] = None
    price_range: Optional[PriceRange] = None
    order_id: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("category", "brand", "department", "name", "order_id", "user_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            # numeric identifiers come back from the model unquoted
            return str(value)
        if isinstance(value, float):
            return str(int(value)) if value.is_integer() else str(value)
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("price_range", mode="before")
    @classmethod
    def _empty_range_to_none(cls, value: Any) -> Any:
        if isinstance(value, dict) and all(v is None for v in value.values()):
            return None
        return value

    def populated(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class IntentResult(BaseModel):
    intent: str = GENERAL_HELP
    entities: Entities = Field(default_factory=Entities)
    missing_info: List[str] = Field(default_factory=list)
    confidence: float = 0.0

    @field_validator("entities", mode="before")
    @classmethod
    def _null_entities(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("missing_info", mode="before")
    @classmethod
    def _null_missing(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        if value is None:
            return 0.0
        # lists and objects would make float() raise TypeError, which escapes validation
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError(f"confidence must be a number, got {type(value).__name__}")
        try:
            number = float(value)
        except OverflowError:
            raise ValueError("confidence is out of range") from None
        if math.isnan(number):
            raise ValueError("confidence must be a number, got NaN")
        return min(1.0, max(0.0, number))

    @classmethod
    def fallback(cls) -> "IntentResult":
        return cls(intent=GENERAL_HELP, entities=Entities(), missing_info=[], confidence=0.1)


class ContextBundle(BaseModel):
    """Data retrieved for the current turn: products or orders, never both."""
    products: Optional[List[ProductOut]] = None
    orders: Optional[List[OrderOut]] = None


class ChatRequest(BaseModel):
    message: Optional[str] = None
    conversation_id: Optional[str] = None
    user_id: Optional[str] = None


class ChatMetadata(BaseModel):
    intent: str
    entities: Dict[str, Any] = Field(default_factory=dict)
    response_time: int


class ChatResponse(BaseModel):
    response: str
    conversation_id: str
    metadata: ChatMetadata
