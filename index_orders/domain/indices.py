"""
Catalogue of oracle indices.

Values on-chain are stored in basis points (x100), e.g. BTC at
$100,000.00 is 10_000_000 and an inflation rate of 3.25% is 325.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel

MAX_PREDEFINED_INDEX_ID = 5


class IndexInfo(BaseModel):
    id: int
    name: str
    symbol: str
    unit: str            # "percent" | "followers" | "usd" | "points" | "raw"
    description: str = ""
    is_custom: bool = False


PREDEFINED_INDICES: Dict[int, IndexInfo] = {
    0: IndexInfo(id=0, name="Inflation Rate", symbol="INFL", unit="percent",
                 description="US CPI year-over-year inflation rate"),
    1: IndexInfo(id=1, name="Elon Followers", symbol="ELON", unit="followers",
                 description="Elon Musk follower count on X"),
    2: IndexInfo(id=2, name="BTC Price", symbol="BTC", unit="usd",
                 description="Bitcoin price in USD"),
    3: IndexInfo(id=3, name="VIX Index", symbol="VIX", unit="points",
                 description="CBOE volatility index"),
    4: IndexInfo(id=4, name="Unemployment Rate", symbol="UNEMP", unit="percent",
                 description="US unemployment rate"),
    5: IndexInfo(id=5, name="Tesla Stock", symbol="TSLA", unit="usd",
                 description="Tesla share price in USD"),
}


def is_predefined(index_id: int) -> bool:
    return 0 <= int(index_id) <= MAX_PREDEFINED_INDEX_ID


def get_index_info(index_id: int) -> IndexInfo:
    idx = int(index_id)
    if idx in PREDEFINED_INDICES:
        return PREDEFINED_INDICES[idx]
    return IndexInfo(
        id=idx,
        name=f"Custom Index {idx}",
        symbol=f"CUSTOM{idx}",
        unit="raw",
        description="User-created oracle index",
        is_custom=True,
    )


def list_predefined() -> List[IndexInfo]:
    return [PREDEFINED_INDICES[i] for i in sorted(PREDEFINED_INDICES)]


def format_index_value(index_id: int, raw: Optional[int]) -> str:
    """
    Render a basis-point oracle value for humans.
        format_index_value(2, 10_000_000) == "$100000.00"
        format_index_value(1, 150_000_000) == "150.0M followers"
    """
    if raw is None:
        return "N/A"
    unit = get_index_info(index_id).unit
    if unit == "followers":
        # follower counts are stored unscaled
        return f"{int(raw) / 1_000_000:.1f}M followers"
    value = int(raw) / 100
    if unit == "percent":
        return f"{value:.2f}%"
    if unit == "usd":
        return f"${value:.2f}"
    if unit == "points":
        return f"{value:.2f}"
    return str(int(raw))
