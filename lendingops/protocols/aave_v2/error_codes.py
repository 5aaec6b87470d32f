"""Map protocol revert messages to a closed set of error kinds.

The pool reverts with short numeric reason strings (``"64"``) defined in its
``Errors`` library. Node clients wrap them differently:

    execution reverted: 64
    VM Exception while processing transaction: reverted with reason string '64'
    Error: VM Exception while processing transaction: revert 64

so the numeric code is pulled out of the reason before the table lookup;
a bare substring test for ``"1"`` would match almost any message. Symbolic
names are matched as plain substrings. Classification never discards the
original text.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from ...models import ErrorKind

# Errors.sol numeric codes
ERROR_CODES: dict[str, ErrorKind] = {
    "1": ErrorKind.INVALID_AMOUNT,  # VL_INVALID_AMOUNT
    "2": ErrorKind.RESERVE_INACTIVE,  # VL_NO_ACTIVE_RESERVE
    "3": ErrorKind.RESERVE_FROZEN,  # VL_RESERVE_FROZEN
    "4": ErrorKind.INSUFFICIENT_LIQUIDITY,  # VL_CURRENT_AVAILABLE_LIQUIDITY_NOT_ENOUGH
    "5": ErrorKind.INVALID_AMOUNT,  # VL_NOT_ENOUGH_AVAILABLE_USER_BALANCE
    "6": ErrorKind.BELOW_LIQUIDATION_THRESHOLD,  # VL_TRANSFER_NOT_ALLOWED
    "9": ErrorKind.INSUFFICIENT_COLLATERAL,  # VL_COLLATERAL_BALANCE_IS_0
    "10": ErrorKind.BELOW_LIQUIDATION_THRESHOLD,  # VL_HEALTH_FACTOR_LOWER_THAN_LIQUIDATION_THRESHOLD
    "11": ErrorKind.INSUFFICIENT_COLLATERAL,  # VL_COLLATERAL_CANNOT_COVER_NEW_BORROW
    "14": ErrorKind.AMOUNT_EXCEEDS_DEBT,  # VL_AMOUNT_BIGGER_THAN_MAX_LOAN_SIZE_STABLE
    "15": ErrorKind.NO_MATCHING_DEBT,  # VL_NO_DEBT_OF_SELECTED_TYPE
    "64": ErrorKind.PAUSED,  # LP_IS_PAUSED
}

# Symbolic fragments, checked in order
ERROR_NAMES: tuple[tuple[str, ErrorKind], ...] = (
    ("LP_IS_PAUSED", ErrorKind.PAUSED),
    ("RESERVE_PAUSED", ErrorKind.PAUSED),
    ("VL_NO_ACTIVE_RESERVE", ErrorKind.RESERVE_INACTIVE),
    ("RESERVE_INACTIVE", ErrorKind.RESERVE_INACTIVE),
    ("VL_RESERVE_FROZEN", ErrorKind.RESERVE_FROZEN),
    ("RESERVE_FROZEN", ErrorKind.RESERVE_FROZEN),
    ("VL_INVALID_AMOUNT", ErrorKind.INVALID_AMOUNT),
    ("VL_NOT_ENOUGH_AVAILABLE_USER_BALANCE", ErrorKind.INVALID_AMOUNT),
    ("INVALID_AMOUNT", ErrorKind.INVALID_AMOUNT),
    ("VL_COLLATERAL_BALANCE_IS_0", ErrorKind.INSUFFICIENT_COLLATERAL),
    ("VL_COLLATERAL_CANNOT_COVER_NEW_BORROW", ErrorKind.INSUFFICIENT_COLLATERAL),
    ("COLLATERAL_CANNOT_COVER_NEW_BORROW", ErrorKind.INSUFFICIENT_COLLATERAL),
    ("VL_HEALTH_FACTOR_LOWER_THAN_LIQUIDATION_THRESHOLD", ErrorKind.BELOW_LIQUIDATION_THRESHOLD),
    ("HEALTH_FACTOR_LOWER_THAN_LIQUIDATION_THRESHOLD", ErrorKind.BELOW_LIQUIDATION_THRESHOLD),
    ("VL_TRANSFER_NOT_ALLOWED", ErrorKind.BELOW_LIQUIDATION_THRESHOLD),
    ("VL_CURRENT_AVAILABLE_LIQUIDITY_NOT_ENOUGH", ErrorKind.INSUFFICIENT_LIQUIDITY),
    ("NOT_ENOUGH_AVAILABLE_LIQUIDITY", ErrorKind.INSUFFICIENT_LIQUIDITY),
    ("VL_NO_DEBT_OF_SELECTED_TYPE", ErrorKind.NO_MATCHING_DEBT),
    ("NO_DEBT_OF_SELECTED_TYPE", ErrorKind.NO_MATCHING_DEBT),
    ("VL_AMOUNT_BIGGER_THAN_MAX_LOAN_SIZE_STABLE", ErrorKind.AMOUNT_EXCEEDS_DEBT),
)

_REASON_PATTERNS = (
    re.compile(r"reverted with reason string '([^']*)'"),
    re.compile(r"execution reverted:\s*([^\s,()]+)"),
    re.compile(r"\brevert(?:ed)?\s+([0-9]+)\b"),
    re.compile(r"\(reason:\s*([^)]+)\)"),
)

HINTS: dict[ErrorKind, str] = {
    ErrorKind.PAUSED: "The pool is paused; every deposit, withdrawal and borrow is blocked",
    ErrorKind.RESERVE_INACTIVE: "The reserve is not active in this pool",
    ErrorKind.RESERVE_FROZEN: "The reserve is frozen; new supply and borrow are blocked",
    ErrorKind.INVALID_AMOUNT: "Invalid amount (zero, or more than the available balance)",
    ErrorKind.INSUFFICIENT_COLLATERAL: "Collateral cannot cover the requested borrow",
    ErrorKind.BELOW_LIQUIDATION_THRESHOLD: "Health factor would drop below 1.0",
    ErrorKind.INSUFFICIENT_LIQUIDITY: "Not enough liquidity in the reserve",
    ErrorKind.NO_MATCHING_DEBT: "No debt of the selected rate mode; check INTEREST_RATE_MODE",
    ErrorKind.AMOUNT_EXCEEDS_DEBT: "Amount exceeds the allowed size for this debt",
    ErrorKind.UNRECOGNIZED: "Unrecognized failure; see the original message",
}


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    code: str | None = None

    @property
    def hint(self) -> str:
        return HINTS[self.kind]

    def describe(self) -> str:
        code = f" (code {self.code})" if self.code else ""
        return f"{self.kind.value}{code}: {self.hint}. Original error: {self.message}"


def extract_reason(message: str) -> str | None:
    """Return the revert reason embedded in a node error message, if any."""
    for pattern in _REASON_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1).strip()
    return None


def classify(message: str) -> ClassifiedError:
    """Classify a raw failure message. Unknown messages are ``UNRECOGNIZED``."""
    text = message or ""

    reason = extract_reason(text)
    if reason is not None and reason in ERROR_CODES:
        return ClassifiedError(kind=ERROR_CODES[reason], message=text, code=reason)

    upper = text.upper()
    for fragment, kind in ERROR_NAMES:
        if fragment in upper:
            return ClassifiedError(kind=kind, message=text, code=fragment)

    return ClassifiedError(kind=ErrorKind.UNRECOGNIZED, message=text)
