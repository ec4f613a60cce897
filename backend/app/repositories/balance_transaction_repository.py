# backend/app/repositories/balance_transaction_repository.py
"""Ledger rows for balance changes."""

from sqlalchemy.orm import Session

from ..models.transaction import BalanceTransaction
from .base_repository import BaseRepository


class BalanceTransactionRepository(BaseRepository[BalanceTransaction]):
    def __init__(self, db: Session):
        super().__init__(db, BalanceTransaction)
