"""
Gasless swaps through 1inch Fusion (intent orders filled by resolvers).

quote -> build order + typed data -> wallet signature -> submit -> poll status

The order is a regular LOP v4 order whose extension points the
making/taking amount getters and the post-interaction at the Fusion
settlement contract, with the Dutch auction encoded as AuctionDetails.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from eth_account import Account
from web3 import Web3

from ..adapters.external.oneinch_client import OneInchClient
from ..domain.enums import FusionOrderStatus, FusionPreset
from .exceptions import FusionOrderError, UpstreamApiError
from .extension import Extension
from .limit_order import LimitOrder
from .maker_traits import MakerTraits, random_nonce


@dataclass
class AuctionPoint:
    coefficient: int  # rate bump at this point, uint24
    delay: int        # seconds since previous point, uint16


@dataclass
class AuctionDetails:
    start_time: int
    duration: int
    initial_rate_bump: int
    points: List[AuctionPoint] = field(default_factory=list)
    gas_bump_estimate: int = 0
    gas_price_estimate: int = 0

    @staticmethod
    def _pack(value: int, size: int, name: str) -> bytes:
        v = int(value)
        if v < 0 or v >= 1 << (8 * size):
            raise ValueError(f"{name}={v} does not fit in uint{8 * size}")
        return v.to_bytes(size, "big")

    def encode(self) -> bytes:
        """
        gasBumpEstimate u24 | gasPriceEstimate u32 | startTime u32 | duration u24 |
        initialRateBump u24 | (coefficient u24, delay u16)*
        """
        out = (
            self._pack(self.gas_bump_estimate, 3, "gasBumpEstimate")
            + self._pack(self.gas_price_estimate, 4, "gasPriceEstimate")
            + self._pack(self.start_time, 4, "startTime")
            + self._pack(self.duration, 3, "duration")
            + self._pack(self.initial_rate_bump, 3, "initialRateBump")
        )
        for p in self.points:
            out += self._pack(p.coefficient, 3, "coefficient") + self._pack(p.delay, 2, "delay")
        return out


def encode_post_interaction_data(resolving_start_time: int, whitelist: List[Dict[str, Any]]) -> bytes:
    """
    flags (whitelist length << 3) | resolvingStartTime u32 |
    (last 10 bytes of resolver address, delay u16)*
    """
    if len(whitelist) > 31:
        raise ValueError("whitelist is limited to 31 resolvers")
    out = bytes([len(whitelist) << 3]) + int(resolving_start_time).to_bytes(4, "big")
    prev = resolving_start_time
    for entry in whitelist:
        addr = Web3.to_bytes(hexstr=entry["address"])
        allow_from = int(entry.get("allowFrom", resolving_start_time))
        delay = max(0, allow_from - prev)
        prev = max(prev, allow_from)
        out += addr[-10:] + min(delay, 0xFFFF).to_bytes(2, "big")
    return out


@dataclass
class FusionOrder:
    order: LimitOrder
    quote_id: str
    preset: FusionPreset
    auction: AuctionDetails
    order_hash: str
    typed_data: Dict[str, Any]


class FusionOrderBuilder:

    def __init__(self, chain_id: int, protocol_address: str):
        self.chain_id = int(chain_id)
        self.protocol_address = Web3.to_checksum_address(protocol_address)

    @staticmethod
    def pick_preset(quote: Dict[str, Any], preset: Optional[FusionPreset | str]) -> FusionPreset:
        presets = quote.get("presets") or {}
        name = FusionPreset(preset).value if preset else quote.get("recommended_preset") or "fast"
        if name not in presets:
            raise FusionOrderError("build", f"preset '{name}' not offered by the quote ({', '.join(presets)})")
        return FusionPreset(name)

    def build(
        self,
        quote: Dict[str, Any],
        *,
        maker: str,
        from_token: str,
        to_token: str,
        amount: int | str,
        preset: Optional[FusionPreset | str] = None,
        receiver: Optional[str] = None,
        now: Optional[int] = None,
    ) -> FusionOrder:
        chosen = self.pick_preset(quote, preset)
        p = quote["presets"][chosen.value]
        settlement = quote.get("settlementAddress")
        if not settlement:
            raise FusionOrderError("build", "quote is missing settlementAddress")
        settlement_bytes = bytes(Web3.to_bytes(hexstr=settlement))

        ts = int(now if now is not None else time.time())
        start_time = ts + int(p.get("startAuctionIn", 0))
        duration = int(p["auctionDuration"])
        gas = p.get("gasCost") or {}
        auction = AuctionDetails(
            start_time=start_time,
            duration=duration,
            initial_rate_bump=int(p.get("initialRateBump", 0)),
            points=[AuctionPoint(coefficient=int(x["coefficient"]), delay=int(x["delay"])) for x in p.get("points", [])],
            gas_bump_estimate=int(gas.get("gasBumpEstimate", 0)),
            gas_price_estimate=int(gas.get("gasPriceEstimate", 0)),
        )
        auction_bytes = auction.encode()

        whitelist = [
            w if isinstance(w, dict) else {"address": w, "allowFrom": start_time}
            for w in quote.get("whitelist", [])
        ]
        extension = Extension(
            making_amount_data=settlement_bytes + auction_bytes,
            taking_amount_data=settlement_bytes + auction_bytes,
            post_interaction=settlement_bytes + encode_post_interaction_data(start_time, whitelist),
        )

        traits = (
            MakerTraits.default()
            .allow_partial_fills(bool(p.get("allowPartialFills", True)))
            .allow_multiple_fills(bool(p.get("allowMultipleFills", True)))
            .enable_post_interaction()
            .with_extension()
            .with_nonce(random_nonce())
            .with_expiration(start_time + duration)
        )

        order = LimitOrder.create(
            maker=maker,
            receiver=receiver or maker,
            maker_asset=from_token,
            taker_asset=to_token,
            making_amount=int(amount),
            taking_amount=int(p["auctionEndAmount"]),
            traits=traits,
            extension=extension,
        )
        return FusionOrder(
            order=order,
            quote_id=str(quote.get("quoteId", "")),
            preset=chosen,
            auction=auction,
            order_hash=order.order_hash(self.chain_id, self.protocol_address),
            typed_data=order.serializable_typed_data(self.chain_id, self.protocol_address),
        )


class FusionService:
    """
    Orchestrates the gasless flow. HTTP callers run each step separately
    (the signature comes from the user's wallet); execute() runs all of them
    for server-side signers.
    """

    def __init__(
        self,
        client: OneInchClient,
        builder: FusionOrderBuilder,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self._client = client
        self._builder = builder
        self._sleep = sleep
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def quote(self, from_token: str, to_token: str, amount: int | str, wallet: str) -> Dict[str, Any]:
        try:
            return await self._client.fusion_quote(from_token, to_token, amount, wallet)
        except UpstreamApiError as exc:
            raise FusionOrderError("quote", str(exc)) from exc

    async def prepare(
        self,
        from_token: str,
        to_token: str,
        amount: int | str,
        wallet: str,
        preset: Optional[FusionPreset | str] = None,
        receiver: Optional[str] = None,
    ) -> FusionOrder:
        q = await self.quote(from_token, to_token, amount, wallet)
        built = self._builder.build(
            q, maker=wallet, from_token=from_token, to_token=to_token, amount=amount, preset=preset, receiver=receiver
        )
        self._logger.info("fusion order %s prepared (preset=%s, quote=%s)", built.order_hash, built.preset.value, built.quote_id)
        return built

    async def submit(self, order: Dict[str, Any], signature: str, extension: str, quote_id: str) -> Any:
        try:
            return await self._client.fusion_submit(order, signature, extension, quote_id)
        except UpstreamApiError as exc:
            raise FusionOrderError("submit", str(exc)) from exc

    async def status(self, order_hash: str) -> Dict[str, Any]:
        return await self._client.fusion_order_status(order_hash)

    async def poll_status(
        self,
        order_hash: str,
        timeout_sec: float = 300,
        initial_delay: float = 2.0,
        factor: float = 1.5,
        max_delay: float = 15.0,
    ) -> Dict[str, Any]:
        """
        Poll the order status with exponential backoff until it reaches a
        terminal state or timeout_sec elapses.
        """
        delay = initial_delay
        waited = 0.0
        last: Dict[str, Any] = {}
        while True:
            try:
                last = await self.status(order_hash)
            except UpstreamApiError as exc:
                # freshly submitted orders can 404 for a few seconds
                self._logger.warning("status %s not available yet: %s", order_hash, exc)
            status = str(last.get("status", FusionOrderStatus.PENDING.value))
            if status in {s.value for s in FusionOrderStatus if s.is_terminal}:
                return {"orderHash": order_hash, "status": status, "timed_out": False, "details": last}
            if waited >= timeout_sec:
                return {"orderHash": order_hash, "status": status, "timed_out": True, "details": last}
            step = min(delay, max_delay, max(timeout_sec - waited, 0))
            await self._sleep(step)
            waited += step
            delay = min(delay * factor, max_delay)

    def sign_typed_data(self, built: FusionOrder, private_key: str) -> str:
        signature = built.order.sign(private_key, self._builder.chain_id, self._builder.protocol_address)
        if not built.order.verify_signature(signature, self._builder.chain_id, self._builder.protocol_address):
            raise FusionOrderError("sign", "private key does not belong to the order maker")
        return signature

    async def execute(
        self,
        from_token: str,
        to_token: str,
        amount: int | str,
        private_key: str,
        preset: Optional[FusionPreset | str] = None,
        timeout_sec: float = 300,
    ) -> Dict[str, Any]:
        wallet = Account.from_key(private_key).address
        built = await self.prepare(from_token, to_token, amount, wallet, preset)
        signature = self.sign_typed_data(built, private_key)
        await self.submit(built.order.to_api_dict(), signature, built.order.extension, built.quote_id)
        self._logger.info("fusion order %s submitted, polling", built.order_hash)
        return await self.poll_status(built.order_hash, timeout_sec=timeout_sec)
