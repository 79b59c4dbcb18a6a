"""
Trading platform manager API constants.
"""
import enum


# Success sentinels returned in "retcode"
SUCCESS_RETCODES = ("0 Done", "0", 0)


class AccountKind(str, enum.Enum):
    """Account groups the portal provisions"""
    demo = "demo"
    real = "real"


# /trade/balance "type" parameter
class BalanceOperationType:
    BALANCE = 2   # Deposit/withdrawal style balance correction
    CREDIT = 3


# Comments attached to balance operations
class BalanceComment:
    DEMO_INITIAL = "demo_initial"
    DEMO_RESET = "demo"
    WITHDRAWAL_PREFIX = "WD"
    CANCEL_REFUND = "ADJ_Cancel_Refund"


# Password types for check/change password
class PasswordType:
    MAIN = "main"
    INVESTOR = "investor"
