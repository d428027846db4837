"""SQLAlchemy models."""

from treasury.models.base import Base
from treasury.models.client import Client, ClientAccount
from treasury.models.transaction import Transaction, TransactionType

__all__ = [
    "Base",
    "Client",
    "ClientAccount",
    "Transaction",
    "TransactionType",
]
