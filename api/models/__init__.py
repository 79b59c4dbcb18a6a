# Models package - import all models so Base.metadata knows every table
from models.signup import UserSignup, SignupStatus
from models.funds import WithdrawalRequest, WithdrawalStatus, DepositReceipt
from models.mt5 import Mt5User, Mt5Deal, Mt5Position, Mt5Daily
from models.audit_log import AuditLog

__all__ = [
    'UserSignup', 'SignupStatus',
    'WithdrawalRequest', 'WithdrawalStatus', 'DepositReceipt',
    'Mt5User', 'Mt5Deal', 'Mt5Position', 'Mt5Daily',
    'AuditLog',
]
