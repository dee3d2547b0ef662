import logging
from typing import Any, Dict, Optional

import httpx

from ...domain.enums import TimeSeriesKind
from ...services.exceptions import ConfigurationError, MarketDataError, UpstreamApiError

# keys Alpha Vantage uses for errors / throttling inside a 200 response
ERROR_KEYS = ("Error Message", "Note", "Information")


class AlphaVantageClient:
    """
    Async wrapper for https://www.alphavantage.co/query.
    Every call is `function=<NAME>&apikey=...` plus function-specific params.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.alphavantage.co/query",
        timeout_sec: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout_sec
        self._transport = transport
        self._logger = logging.getLogger(self.__class__.__name__)

    async def query(self, function: str, **params: Any) -> Dict[str, Any]:
        if not self._api_key:
            raise ConfigurationError("ALPHAVANTAGE_API_KEY", "API key not configured")

        q = {"function": function.upper(), "apikey": self._api_key}
        q.update({k: v for k, v in params.items() if v is not None})
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.get(self._base_url, params=q)
        except httpx.HTTPError as exc:
            self._logger.warning("alphavantage %s transport error: %s", function, exc)
            raise UpstreamApiError(self._base_url, None, None, f"Alpha Vantage request failed: {exc}") from exc

        if r.status_code != 200:
            self._logger.warning("alphavantage %s non-200: %s %s", function, r.status_code, r.text[:300])
            raise UpstreamApiError(self._base_url, r.status_code, r.text)

        data = r.json()
        if isinstance(data, dict):
            for key in ERROR_KEYS:
                if key in data:
                    raise MarketDataError(function, str(data[key]))
        return data

    # ---------- typed helpers ----------

    async def time_series(
        self,
        symbol: str,
        kind: TimeSeriesKind = TimeSeriesKind.DAILY,
        interval: Optional[str] = None,
        outputsize: str = "compact",
    ) -> Dict[str, Any]:
        if kind == TimeSeriesKind.INTRADAY and not interval:
            interval = "5min"
        return await self.query(
            kind.value,
            symbol=symbol.upper(),
            interval=interval if kind == TimeSeriesKind.INTRADAY else None,
            outputsize=outputsize,
        )

    async def global_quote(self, symbol: str) -> Dict[str, Any]:
        return await self.query("GLOBAL_QUOTE", symbol=symbol.upper())

    async def symbol_search(self, keywords: str) -> Dict[str, Any]:
        return await self.query("SYMBOL_SEARCH", keywords=keywords)

    async def company_overview(self, symbol: str) -> Dict[str, Any]:
        return await self.query("OVERVIEW", symbol=symbol.upper())

    async def technical_indicator(
        self,
        function: str,
        symbol: str,
        interval: str = "daily",
        time_period: Optional[int] = 14,
        series_type: Optional[str] = "close",
    ) -> Dict[str, Any]:
        """SMA / EMA / RSI / MACD / BBANDS ... (MACD ignores time_period)."""
        fn = function.upper()
        return await self.query(
            fn,
            symbol=symbol.upper(),
            interval=interval,
            time_period=None if fn == "MACD" else time_period,
            series_type=series_type,
        )

    async def fx_rate(self, from_currency: str, to_currency: str) -> Dict[str, Any]:
        return await self.query(
            "CURRENCY_EXCHANGE_RATE", from_currency=from_currency.upper(), to_currency=to_currency.upper()
        )

    async def crypto_series(self, symbol: str, market: str = "USD") -> Dict[str, Any]:
        return await self.query("DIGITAL_CURRENCY_DAILY", symbol=symbol.upper(), market=market.upper())

    async def news_sentiment(self, tickers: Optional[str] = None, topics: Optional[str] = None,
                             limit: int = 50) -> Dict[str, Any]:
        return await self.query("NEWS_SENTIMENT", tickers=tickers, topics=topics, limit=limit)

    async def economic_indicator(self, function: str, interval: Optional[str] = None) -> Dict[str, Any]:
        """REAL_GDP, CPI, INFLATION, UNEMPLOYMENT, FEDERAL_FUNDS_RATE, TREASURY_YIELD ..."""
        return await self.query(function.upper(), interval=interval)
