import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ...services.exceptions import ConfigurationError, UpstreamApiError


class OneInchClient:
    """
    Async HTTP wrapper around the 1inch Developer Portal APIs used here:

      swap      {base}/swap/v6.1/{chain}/...
      tokens    {base}/token/v1.3/{chain}
      orderbook {base}/orderbook/v4.0/{chain}/...
      fusion    {base}/fusion/{quoter|relayer|orders}/v2.0/{chain}/...

    No business logic here, only raw HTTP. Non-2xx answers raise
    UpstreamApiError carrying the upstream body.
    """

    def __init__(
        self,
        api_key: str,
        chain_id: int = 8453,
        base_url: str = "https://api.1inch.dev",
        timeout_sec: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._chain_id = int(chain_id)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_sec
        self._transport = transport
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def chain_id(self) -> int:
        return self._chain_id

    # ---------- internal ----------

    def _headers(self) -> Dict[str, str]:
        if not self._api_key:
            raise ConfigurationError("ONEINCH_API_KEY", "API key not configured")
        return {"Authorization": f"Bearer {self._api_key}", "Accept": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        # drop unset query params, httpx would send them as empty strings
        clean = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.request(method, url, params=clean, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            self._logger.warning("%s %s transport error: %s", method, url, exc)
            raise UpstreamApiError(url, None, None, f"1inch request failed: {exc}") from exc

        if 200 <= r.status_code < 300:
            if not r.content:
                return {}
            return r.json()

        body: Any
        try:
            body = r.json()
        except ValueError:
            body = r.text
        self._logger.warning("%s non-2xx %s: %s %s", method, url, r.status_code, str(body)[:300])
        detail = None
        if isinstance(body, dict):
            detail = body.get("description") or body.get("error") or body.get("message")
        raise UpstreamApiError(url, r.status_code, body, detail or f"1inch API error {r.status_code}")

    # ---------- classic swap (v6.1) ----------

    async def quote(self, src: str, dst: str, amount: str | int, **extra: Any) -> Dict[str, Any]:
        """
        GET /swap/v6.1/{chain}/quote?src&dst&amount
        """
        params = {"src": src, "dst": dst, "amount": str(amount), **extra}
        return await self._request("GET", f"/swap/v6.1/{self._chain_id}/quote", params=params)

    async def swap(
        self,
        src: str,
        dst: str,
        amount: str | int,
        from_address: str,
        slippage: float = 1,
        **extra: Any,
    ) -> Dict[str, Any]:
        """
        GET /swap/v6.1/{chain}/swap?src&dst&amount&from&slippage
        Returns {dstAmount, tx: {from, to, data, value, gas, gasPrice}}.
        """
        params = {
            "src": src,
            "dst": dst,
            "amount": str(amount),
            "from": from_address,
            "origin": from_address,
            "slippage": slippage,
            **extra,
        }
        return await self._request("GET", f"/swap/v6.1/{self._chain_id}/swap", params=params)

    async def allowance(self, token_address: str, wallet_address: str) -> int:
        data = await self._request(
            "GET",
            f"/swap/v6.1/{self._chain_id}/approve/allowance",
            params={"tokenAddress": token_address, "walletAddress": wallet_address.lower()},
        )
        return int(data.get("allowance", 0))

    async def approve_transaction(self, token_address: str, amount: Optional[str | int] = None) -> Dict[str, Any]:
        """Unlimited approval when amount is omitted."""
        params = {"tokenAddress": token_address, "amount": str(amount) if amount is not None else None}
        return await self._request("GET", f"/swap/v6.1/{self._chain_id}/approve/transaction", params=params)

    async def spender(self) -> str:
        data = await self._request("GET", f"/swap/v6.1/{self._chain_id}/approve/spender")
        return data.get("address", "")

    async def tokens(self) -> Dict[str, Any]:
        return await self._request("GET", f"/token/v1.3/{self._chain_id}")

    # ---------- limit order orderbook (v4.0) ----------

    async def submit_limit_order(self, order_hash: str, signature: str, data: Dict[str, Any]) -> Any:
        """
        POST /orderbook/v4.0/{chain}
        body: { orderHash, signature, data: {salt, maker, receiver, makerAsset, takerAsset,
                makingAmount, takingAmount, makerTraits, extension} }
        """
        payload = {"orderHash": order_hash, "signature": signature, "data": data}
        return await self._request("POST", f"/orderbook/v4.0/{self._chain_id}", json=payload)

    async def orders_by_maker(
        self,
        maker: str,
        *,
        page: int = 1,
        limit: int = 100,
        statuses: Optional[Sequence[int]] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if statuses:
            params["statuses"] = [int(s) for s in statuses]
        data = await self._request("GET", f"/orderbook/v4.0/{self._chain_id}/address/{maker}", params=params)
        if isinstance(data, dict):
            # some deployments wrap the list
            return list(data.get("items") or data.get("orders") or [])
        return list(data or [])

    async def order_by_hash(self, order_hash: str) -> Dict[str, Any]:
        return await self._request("GET", f"/orderbook/v4.0/{self._chain_id}/order/{order_hash}")

    # ---------- fusion (v2.0) ----------

    async def fusion_quote(
        self,
        from_token: str,
        to_token: str,
        amount: str | int,
        wallet_address: str,
        enable_estimate: bool = True,
    ) -> Dict[str, Any]:
        params = {
            "fromTokenAddress": from_token,
            "toTokenAddress": to_token,
            "amount": str(amount),
            "walletAddress": wallet_address,
            "enableEstimate": str(bool(enable_estimate)).lower(),
        }
        return await self._request("GET", f"/fusion/quoter/v2.0/{self._chain_id}/quote/receive", params=params)

    async def fusion_submit(self, order: Dict[str, Any], signature: str, extension: str, quote_id: str) -> Any:
        payload = {"order": order, "signature": signature, "extension": extension, "quoteId": quote_id}
        return await self._request("POST", f"/fusion/relayer/v2.0/{self._chain_id}/order/submit", json=payload)

    async def fusion_order_status(self, order_hash: str) -> Dict[str, Any]:
        return await self._request("GET", f"/fusion/orders/v2.0/{self._chain_id}/order/status/{order_hash}")

    async def fusion_active_orders(self, page: int = 1, limit: int = 100) -> Dict[str, Any]:
        return await self._request(
            "GET", f"/fusion/orders/v2.0/{self._chain_id}/order/active", params={"page": page, "limit": limit}
        )
