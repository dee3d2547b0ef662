from enum import Enum


class ComparisonOperator(str, Enum):
    """
    How the oracle value is compared against the order threshold.
    gte/lte/neq are expressed on-chain as the negation of lt/gt/eq.
    """
    GT = "gt"
    LT = "lt"
    EQ = "eq"
    GTE = "gte"
    LTE = "lte"
    NEQ = "neq"

    @property
    def symbol(self) -> str:
        return _OPERATOR_META[self][1]

    @property
    def label(self) -> str:
        return _OPERATOR_META[self][0]

    @property
    def description(self) -> str:
        return _OPERATOR_META[self][2]


_OPERATOR_META = {
    ComparisonOperator.GT: ("Greater Than", ">", "Execute when index value is greater than threshold"),
    ComparisonOperator.LT: ("Less Than", "<", "Execute when index value is less than threshold"),
    ComparisonOperator.EQ: ("Equal To", "==", "Execute when index value equals threshold"),
    ComparisonOperator.GTE: ("Greater Than or Equal", ">=", "Execute when index value is greater than or equal to threshold"),
    ComparisonOperator.LTE: ("Less Than or Equal", "<=", "Execute when index value is less than or equal to threshold"),
    ComparisonOperator.NEQ: ("Not Equal To", "!=", "Execute when index value is not equal to threshold"),
}


class OrderStatus(str, Enum):
    """
    Normalized lifecycle of a limit order on the 1inch orderbook.
    """
    ACTIVE = "active"
    FILLED = "filled"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


class StoredOrderStatus(str, Enum):
    """
    Local lifecycle of an order created through this service.
    """
    PREPARED = "prepared"     # typed data handed to the wallet, waiting for signature
    SUBMITTED = "submitted"   # signed + accepted by the orderbook
    FAILED = "failed"         # orderbook rejected the submission


class SwapMode(str, Enum):
    CLASSIC = "classic"   # aggregation router swap, user pays gas
    GASLESS = "gasless"   # Fusion intent, user only signs


class FusionPreset(str, Enum):
    FAST = "fast"
    FAIR = "fair"
    AUCTION = "auction"


class FusionOrderStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_FILLED = "partially-filled"
    FILLED = "filled"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    FALSE_PREDICATE = "false-predicate"
    NOT_ENOUGH_BALANCE_OR_ALLOWANCE = "not-enough-balance-or-allowance"
    WRONG_PERMIT = "wrong-permit"
    INVALID_SIGNATURE = "invalid-signature"

    @property
    def is_terminal(self) -> bool:
        return self in (
            FusionOrderStatus.FILLED,
            FusionOrderStatus.EXPIRED,
            FusionOrderStatus.CANCELLED,
            FusionOrderStatus.REFUNDED,
        )


class TimeSeriesKind(str, Enum):
    INTRADAY = "TIME_SERIES_INTRADAY"
    DAILY = "TIME_SERIES_DAILY"
    WEEKLY = "TIME_SERIES_WEEKLY"
    MONTHLY = "TIME_SERIES_MONTHLY"
