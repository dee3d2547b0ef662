from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .enums import ComparisonOperator, FusionPreset, StoredOrderStatus


class CamelModel(BaseModel):
    """
    Wire models speak camelCase (what wallets / the 1inch SDK use),
    python code keeps snake_case.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IndexCondition(CamelModel):
    index_id: int = Field(..., ge=0)
    operator: ComparisonOperator
    threshold: int = Field(..., ge=0, lt=2**256)
    description: Optional[str] = None

    @field_validator("operator", mode="before")
    @classmethod
    def lower_operator(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v


class OrderRequest(CamelModel):
    """
    Conditional limit order as sent by the client.

    Every field is optional at the model level on purpose: /orders/validate
    has to answer with the full list of problems instead of a 422.
    """
    from_token: Optional[str] = None
    to_token: Optional[str] = None
    amount: Optional[str] = None           # human units of from_token
    expected_amount: Optional[str] = None  # human units of to_token
    condition: Optional[Dict[str, Any]] = None
    maker_address: Optional[str] = None
    receiver: Optional[str] = None
    expiration_sec: Optional[int] = Field(None, ge=60)

    @field_validator("amount", "expected_amount", mode="before")
    @classmethod
    def numbers_to_str(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = []


class SubmitOrderRequest(CamelModel):
    order_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=4)

    @field_validator("signature")
    @classmethod
    def hex_signature(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith("0x"):
            v = "0x" + v
        return v


class StoredOrder(BaseModel):
    """
    Order created through this service, kept between prepare and submit.
    `order` is the LimitOrder api dict (uint256 as decimal strings).
    """
    order_id: str
    order_hash: str
    maker: str
    status: StoredOrderStatus = StoredOrderStatus.PREPARED
    order: Dict[str, Any]
    extension: str = "0x"
    condition: Optional[Dict[str, Any]] = None
    summary: Optional[str] = None
    signature: Optional[str] = None
    orderbook_response: Optional[Any] = None
    last_error: Optional[str] = None
    created_at: Optional[int] = None
    created_at_iso: Optional[str] = None
    updated_at: Optional[int] = None


class CanCancelRequest(CamelModel):
    order_hash: str
    wallet_address: str


class CancelOrderRequest(CamelModel):
    order_hash: str


class CancelManyRequest(CamelModel):
    order_hashes: List[str] = Field(..., min_length=1)
    delay_sec: float = Field(2.0, ge=0)


class ClassicSwapRequest(CamelModel):
    src: str
    dst: str
    amount: str = Field(..., description="raw units of src")
    wallet_address: str
    slippage: float = Field(1.0, gt=0, le=50)

    @field_validator("amount", mode="before")
    @classmethod
    def raw_integer_amount(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            v = v.strip()
            if not (v.isascii() and v.isdigit()) or int(v) == 0:
                raise ValueError("amount must be a positive integer in raw token units")
        return v


class FusionQuoteRequest(CamelModel):
    from_token: str
    to_token: str
    amount: str = Field(..., description="raw units of from_token")
    wallet_address: str


class FusionPrepareRequest(FusionQuoteRequest):
    preset: Optional[FusionPreset] = None
    receiver: Optional[str] = None


class FusionSubmitRequest(CamelModel):
    order: Dict[str, Any]
    signature: str
    extension: str = "0x"
    quote_id: str
    order_hash: Optional[str] = None


class CreateIndexRequest(CamelModel):
    initial_value: int = Field(..., ge=0)
    source_url: str = Field("", max_length=512)


class UpdateIndexRequest(CamelModel):
    value: int = Field(..., ge=0)


class SetActiveRequest(CamelModel):
    active: bool


class SimulateMovementRequest(CamelModel):
    percentage_bps: int = Field(..., ge=0, le=10_000)
    is_increase: bool = True


class TrackOrderRequest(CamelModel):
    order_hash: str
    description: str = "Custom Order"
    condition: Optional[IndexCondition] = None
