from typing import Any, List, Optional


class TransactionRevertedError(Exception):
    """
    Raised when the tx was actually sent on-chain, mined, and status == 0.
    You ALREADY paid gas, the chain executed and reverted.
    """
    def __init__(self, tx_hash: str, receipt: dict, msg: str, budget_block: dict):
        super().__init__(msg)
        self.tx_hash = tx_hash
        self.receipt = receipt
        self.msg = msg
        self.budget_block = budget_block


class TransactionBudgetExceededError(Exception):
    """
    Raised BEFORE broadcasting the tx if the predicted max gas cost
    (gas_limit * gas_price * eth_usd) is above caller's budget.
    This means: nothing was sent on-chain yet.
    """
    def __init__(self, est_gas_limit: int, gas_price_wei: int, eth_usd: float, usd_estimated: float, usd_budget: float):
        super().__init__("Gas budget exceeded")
        self.est_gas_limit = est_gas_limit
        self.gas_price_wei = gas_price_wei
        self.eth_usd = eth_usd
        self.usd_estimated = usd_estimated
        self.usd_budget = usd_budget


class ConfigurationError(Exception):
    """A setting required by the requested operation is missing."""
    def __init__(self, setting: str, msg: Optional[str] = None):
        super().__init__(msg or f"{setting} not configured")
        self.setting = setting


class OrderValidationError(Exception):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors) or "Invalid order")
        self.errors = list(errors)


class UnknownTokenError(Exception):
    def __init__(self, token: str):
        super().__init__(f"Unknown token: {token}")
        self.token = token


class OrderNotFoundError(Exception):
    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class UpstreamApiError(Exception):
    """
    Non-2xx answer (or transport failure) from a third-party API.
    status_code is None when the request never got a response.
    """
    def __init__(self, url: str, status_code: Optional[int], body: Any = None, msg: Optional[str] = None):
        super().__init__(msg or f"Upstream error {status_code} for {url}")
        self.url = url
        self.status_code = status_code
        self.body = body


class CancellationError(Exception):
    """
    Failure while cancelling a limit order on-chain.
    code is one of ORDER_NOT_FOUND | NOT_ORDER_MAKER | TRANSACTION_REVERTED | UNKNOWN_ERROR.
    """
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    NOT_ORDER_MAKER = "NOT_ORDER_MAKER"
    TRANSACTION_REVERTED = "TRANSACTION_REVERTED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    def __init__(self, code: str, msg: str, tx_hash: Optional[str] = None):
        super().__init__(msg)
        self.code = code
        self.msg = msg
        self.tx_hash = tx_hash


class MarketDataError(Exception):
    """Alpha Vantage answered 200 but the payload carries an error/throttle note."""
    def __init__(self, function: str, msg: str):
        super().__init__(msg)
        self.function = function
        self.msg = msg


class FusionOrderError(Exception):
    def __init__(self, stage: str, msg: str):
        super().__init__(f"[{stage}] {msg}")
        self.stage = stage
        self.msg = msg
