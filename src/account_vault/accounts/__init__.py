"""
Account state machine and registry.
"""

from .account import Account
from .events import AccountEvents
from .kinds import ImportedAccountKind, get_kind
from .registry import AccountRegistry

__all__ = [
    "Account",
    "AccountEvents",
    "ImportedAccountKind",
    "get_kind",
    "AccountRegistry",
]
