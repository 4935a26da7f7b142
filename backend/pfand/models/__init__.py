from .accounts import Account
from .pfand import PfandTransaction

__all__ = [
    'Account',
    'PfandTransaction',
]
