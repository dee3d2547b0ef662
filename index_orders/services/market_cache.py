"""
File-backed cache in front of Alpha Vantage.

The free tier allows a handful of calls per minute, so each
(symbol, function, interval) is refreshed at most once a day and failed
fetches back off for two hours (three strikes, then the old data wins).
"""
import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from ..adapters.external.alphavantage_client import AlphaVantageClient
from ..domain.enums import TimeSeriesKind
from .exceptions import MarketDataError, UpstreamApiError

CACHE_DURATION_SEC = 24 * 3600
RETRY_DELAY_SEC = 2 * 3600
MAX_RETRIES = 3
CLEANUP_AGE_SEC = 7 * 24 * 3600


def cache_key(symbol: str, function: str, interval: Optional[str] = None) -> str:
    raw = f"{symbol}_{function}" + (f"_{interval}" if interval else "")
    return re.sub(r"[^A-Za-z0-9]", "_", raw)


class MarketDataCache:
    """
    One JSON file per key under DATA_ROOT/market_cache/.
    Entry: {data, last_fetch, last_success, retry_count, last_error}
    (timestamps in unix seconds).
    """

    def __init__(self, data_root: str, clock: Callable[[], float] = time.time):
        self._dir = Path(data_root) / "market_cache"
        self._clock = clock
        self._logger = logging.getLogger(self.__class__.__name__)

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        p = self._path(key)
        if not p.exists():
            return None
        try:
            return json.loads(p.read_text())
        except ValueError:
            self._logger.warning("corrupt cache entry %s, ignoring", p.name)
            return None

    def _save(self, key: str, entry: Dict[str, Any]) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(json.dumps(entry, indent=2))

    def should_use_cache(self, key: str) -> bool:
        entry = self.get(key)
        if not entry:
            return False
        now = self._clock()

        last_success = entry.get("last_success")
        if last_success and now - last_success < CACHE_DURATION_SEC:
            return True

        if entry.get("retry_count", 0) > 0 and now - entry.get("last_fetch", 0) < RETRY_DELAY_SEC:
            return True

        if entry.get("retry_count", 0) >= MAX_RETRIES and entry.get("data") is not None:
            return True
        return False

    def record_success(self, key: str, data: Any) -> None:
        now = self._clock()
        self._save(key, {
            "data": data,
            "last_fetch": now,
            "last_success": now,
            "retry_count": 0,
            "last_error": None,
        })

    def record_failure(self, key: str, error: str) -> Dict[str, Any]:
        entry = self.get(key) or {"data": None, "last_success": None, "retry_count": 0}
        entry["last_fetch"] = self._clock()
        entry["retry_count"] = int(entry.get("retry_count", 0)) + 1
        entry["last_error"] = error
        self._save(key, entry)
        return entry

    def cleanup(self) -> int:
        """Remove entries not fetched for CLEANUP_AGE_SEC. Returns how many were dropped."""
        if not self._dir.exists():
            return 0
        now = self._clock()
        removed = 0
        for p in self._dir.glob("*.json"):
            entry = self.get(p.stem)
            if entry is None or now - entry.get("last_fetch", 0) > CLEANUP_AGE_SEC:
                p.unlink()
                removed += 1
        if removed:
            self._logger.info("market cache cleanup removed %d entries", removed)
        return removed

    def stats(self) -> Dict[str, int]:
        out = {"total": 0, "successful": 0, "failed": 0, "retrying": 0}
        if not self._dir.exists():
            return out
        for p in self._dir.glob("*.json"):
            entry = self.get(p.stem)
            if entry is None:
                continue
            out["total"] += 1
            retries = int(entry.get("retry_count", 0))
            if retries == 0 and entry.get("last_success"):
                out["successful"] += 1
            elif retries >= MAX_RETRIES:
                out["failed"] += 1
            else:
                out["retrying"] += 1
        return out


class CachedMarketData:
    """AlphaVantageClient calls wrapped in the MarketDataCache policy."""

    def __init__(self, client: AlphaVantageClient, cache: MarketDataCache, logger: Optional[logging.Logger] = None):
        self._client = client
        self._cache = cache
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def fetch(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Dict[str, Any]:
        if self._cache.should_use_cache(key):
            entry = self._cache.get(key) or {}
            if entry.get("data") is not None:
                return {"data": entry["data"], "cached": True, "stale": bool(entry.get("retry_count")), "key": key}

        try:
            data = await loader()
        except (MarketDataError, UpstreamApiError) as exc:
            entry = self._cache.record_failure(key, str(exc))
            self._logger.warning("market fetch %s failed (retry %s): %s", key, entry["retry_count"], exc)
            if entry.get("data") is not None:
                return {"data": entry["data"], "cached": True, "stale": True, "key": key, "error": str(exc)}
            raise

        self._cache.record_success(key, data)
        return {"data": data, "cached": False, "stale": False, "key": key}

    async def time_series(self, symbol: str, kind: TimeSeriesKind = TimeSeriesKind.DAILY,
                          interval: Optional[str] = None) -> Dict[str, Any]:
        key = cache_key(symbol, kind.value, interval)
        return await self.fetch(key, lambda: self._client.time_series(symbol, kind, interval))

    async def global_quote(self, symbol: str) -> Dict[str, Any]:
        return await self.fetch(cache_key(symbol, "GLOBAL_QUOTE"), lambda: self._client.global_quote(symbol))

    async def technical_indicator(self, function: str, symbol: str, interval: str = "daily",
                                  time_period: Optional[int] = 14, series_type: Optional[str] = "close") -> Dict[str, Any]:
        key = cache_key(symbol, f"{function}_{time_period}", interval)
        return await self.fetch(
            key,
            lambda: self._client.technical_indicator(function, symbol, interval, time_period, series_type),
        )
