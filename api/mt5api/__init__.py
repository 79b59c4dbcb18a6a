from mt5api.client import ManagerClient
from mt5api.constants import AccountKind
from mt5api.models import AccountSnapshot, CreatedAccount, BalanceTicket, PasswordCheck

__all__ = ['ManagerClient', 'AccountKind', 'AccountSnapshot', 'CreatedAccount', 'BalanceTicket', 'PasswordCheck']
