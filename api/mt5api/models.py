"""
Typed views of trading platform responses.

The manager API (and the mirror tables) are inconsistent about key
casing: the same field shows up as "Balance", "balance" or
"margin_free" depending on the endpoint. FIELD_ALIASES is the one place
that knows about this; everything else in the portal reads the DTOs.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel

from mt5api.constants import SUCCESS_RETCODES

# canonical field -> keys the platform has been seen to use
FIELD_ALIASES = {
    "login": ("Login", "login"),
    "currency_digits": ("CurrencyDigits", "currency_digits"),
    "balance": ("Balance", "balance"),
    "credit": ("Credit", "credit"),
    "margin": ("Margin", "margin"),
    "margin_free": ("MarginFree", "margin_free", "marginfree"),
    "margin_level": ("MarginLevel", "margin_level", "marginlevel"),
    "margin_leverage": ("MarginLeverage", "leverage", "margin_leverage"),
    "profit": ("Profit", "profit"),
    "storage": ("Storage", "storage"),
    "floating": ("Floating", "floating"),
    "equity": ("Equity", "equity"),
    "ticket": ("ticket", "Ticket", "deal", "Deal"),
}

# canonical field -> key used in the portal's own account/get answer
ANSWER_KEYS = {
    "login": "Login",
    "currency_digits": "CurrencyDigits",
    "balance": "Balance",
    "credit": "Credit",
    "margin": "Margin",
    "margin_free": "MarginFree",
    "margin_level": "MarginLevel",
    "margin_leverage": "MarginLeverage",
    "profit": "Profit",
    "storage": "Storage",
    "floating": "Floating",
    "equity": "Equity",
}


def pick(payload: Optional[Dict[str, Any]], field: str, default=None):
    """Return the first present alias of a canonical field."""
    if not payload:
        return default
    for key in FIELD_ALIASES.get(field, (field,)):
        value = payload.get(key)
        if value is not None:
            return value
    return default


def _to_float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def is_success(payload: Optional[Dict[str, Any]]) -> bool:
    if not payload:
        return False
    if payload.get("success") is True:
        return True
    return payload.get("retcode") in SUCCESS_RETCODES


def answer_of(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """The result object of a response, whichever envelope it came in."""
    if not payload:
        return {}
    for key in ("answer", "data"):
        value = payload.get(key)
        if isinstance(value, dict):
            return value
    return {}


class AccountSnapshot(BaseModel):
    login: str
    currency_digits: int = 2
    balance: float = 0.0
    credit: float = 0.0
    margin: float = 0.0
    margin_free: float = 0.0
    margin_level: float = 0.0
    margin_leverage: float = 0.0
    profit: float = 0.0
    storage: float = 0.0
    floating: float = 0.0
    equity: float = 0.0

    @classmethod
    def from_payload(cls, answer: Dict[str, Any], login: Optional[str] = None) -> "AccountSnapshot":
        values = {
            field: _to_float(pick(answer, field, 0))
            for field in ANSWER_KEYS
            if field not in ("login", "currency_digits")
        }
        digits = pick(answer, "currency_digits")
        return cls(
            login=str(pick(answer, "login", login) or ""),
            currency_digits=int(_to_float(digits)) if digits not in (None, "", 0) else 2,
            **values,
        )

    def to_answer(self) -> Dict[str, str]:
        """Render in the platform's casing with 2-decimal string amounts."""
        answer = {}
        for field, key in ANSWER_KEYS.items():
            value = getattr(self, field)
            if isinstance(value, float):
                answer[key] = f"{value:.2f}"
            else:
                answer[key] = str(value)
        return answer


class CreatedAccount(BaseModel):
    login: str
    group: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], group: str) -> Optional["CreatedAccount"]:
        login = pick(answer_of(payload), "login")
        if not is_success(payload) or not login:
            return None
        return cls(login=str(login), group=group)


class BalanceTicket(BaseModel):
    ticket: str
    login: str
    amount: float
    comment: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], login: str, amount: float, comment: str) -> Optional["BalanceTicket"]:
        ticket = pick(answer_of(payload), "ticket") or pick(payload, "ticket")
        if not is_success(payload) or not ticket:
            return None
        return cls(ticket=str(ticket), login=str(login), amount=amount, comment=comment)


class PasswordCheck(BaseModel):
    success: bool = False
    valid: bool = False
    raw: Dict[str, Any] = {}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PasswordCheck":
        return cls(
            success=bool(payload.get("success")) or is_success(payload),
            valid=bool(payload.get("valid") or answer_of(payload).get("valid")),
            raw=payload,
        )
