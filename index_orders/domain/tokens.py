"""
Token registry for Base mainnet.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel
from web3 import Web3

from ..services.exceptions import UnknownTokenError

NATIVE_TOKEN_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"


class Token(BaseModel):
    symbol: str
    address: str
    decimals: int
    name: Optional[str] = None

    @property
    def is_native(self) -> bool:
        return self.address.lower() == NATIVE_TOKEN_ADDRESS.lower()


BASE_TOKENS: List[Token] = [
    Token(symbol="USDC", address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", decimals=6, name="USD Coin"),
    Token(symbol="WETH", address="0x4200000000000000000000000000000000000006", decimals=18, name="Wrapped Ether"),
    Token(symbol="DAI", address="0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb", decimals=18, name="Dai Stablecoin"),
    Token(symbol="1INCH", address="0xc5fecc3a29fb57b5024eec8a2239d4621e111cce", decimals=18, name="1inch"),
    Token(symbol="WBTC", address="0x0b3e328455c4059eeb9e3f84b5543f74e24e7e1b", decimals=8, name="Wrapped BTC"),
    Token(symbol="cbETH", address="0x2Ae3F1Ec7F1F5012CFEab0185bfc7aa3cf0DEc22", decimals=18, name="Coinbase Wrapped Staked ETH"),
    Token(symbol="USDbC", address="0xd9aAEc86B65D86f6A7B5B1b0c42FFA531710b6CA", decimals=6, name="USD Base Coin"),
    Token(symbol="ETH", address=NATIVE_TOKEN_ADDRESS, decimals=18, name="Ether"),
]

_BY_SYMBOL: Dict[str, Token] = {t.symbol.upper(): t for t in BASE_TOKENS}
_BY_ADDRESS: Dict[str, Token] = {t.address.lower(): t for t in BASE_TOKENS}


def list_tokens() -> List[Token]:
    return list(BASE_TOKENS)


def resolve_token(token: str) -> Token:
    """
    Accepts a symbol ("usdc") or an address ("0x...").
    Unknown addresses are allowed and assumed to be 18-decimals ERC20s.
    """
    if not token or not isinstance(token, str):
        raise UnknownTokenError(str(token))

    t = token.strip()
    if t.startswith("0x"):
        known = _BY_ADDRESS.get(t.lower())
        if known:
            return known
        if not Web3.is_address(t):
            raise UnknownTokenError(t)
        return Token(symbol="UNKNOWN", address=Web3.to_checksum_address(t), decimals=18)

    known = _BY_SYMBOL.get(t.upper())
    if not known:
        raise UnknownTokenError(t)
    return known


def token_by_address(address: Optional[str]) -> Token:
    """
    Best-effort lookup used when rendering orderbook data.
    Unknown addresses get a shortened pseudo-symbol.
    """
    if not address:
        return Token(symbol="Unknown", address="", decimals=18)
    known = _BY_ADDRESS.get(address.lower())
    if known:
        return known
    return Token(symbol=address[:8] + "...", address=address, decimals=18)
