# backend/app/services/balance_service.py
"""
Balance Service for the mentorship platform.

Moves money between user balances and writes the matching ledger row.
Nothing here commits: callers run these methods inside their own
``transaction()`` so a balance change always lands together with the
session change that caused it.
"""

from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..core.enums import TransactionType
from ..core.exceptions import InsufficientFundsException, NotFoundException, ValidationException
from ..models.transaction import BalanceTransaction
from ..models.user import User
from ..repositories import RepositoryFactory
from ..repositories.balance_transaction_repository import BalanceTransactionRepository
from ..repositories.user_repository import UserRepository
from .base import BaseService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Quantize to cents, rounding half up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class BalanceService(BaseService):
    """Debit/credit collaborator used by the session transactions."""

    def __init__(
        self,
        db: Session,
        user_repository: Optional[UserRepository] = None,
        transaction_repository: Optional[BalanceTransactionRepository] = None,
    ):
        super().__init__(db)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)
        self.transaction_repository = (
            transaction_repository or RepositoryFactory.create_balance_transaction_repository(db)
        )

    def _load(self, user_id: str) -> User:
        user = self.user_repository.get_for_balance_update(user_id)
        if user is None:
            raise NotFoundException("User not found", details={"user_id": user_id})
        return user

    @staticmethod
    def ensure_sufficient(user: User, amount: Decimal) -> None:
        available = to_money(user.balance or 0)
        if available < amount:
            raise InsufficientFundsException(required=amount, available=available)

    def debit(
        self,
        user_id: str,
        amount: Decimal,
        transaction_type: TransactionType,
        *,
        session_id: Optional[str] = None,
        related_user_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> BalanceTransaction:
        """
        Take ``amount`` from the user's balance.

        Raises:
            InsufficientFundsException: the balance would go negative
            NotFoundException: unknown user
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationException("Debit amount must be positive")
        user = self._load(user_id)
        self.ensure_sufficient(user, amount)
        user.balance = to_money(user.balance) - amount
        return self._record(
            user, -amount, transaction_type, session_id, related_user_id, description
        )

    def credit(
        self,
        user_id: str,
        amount: Decimal,
        transaction_type: TransactionType,
        *,
        session_id: Optional[str] = None,
        related_user_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> BalanceTransaction:
        """Add ``amount`` to the user's balance."""
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationException("Credit amount must be positive")
        user = self._load(user_id)
        user.balance = to_money(user.balance or 0) + amount
        return self._record(
            user, amount, transaction_type, session_id, related_user_id, description
        )

    def _record(
        self,
        user: User,
        signed_amount: Decimal,
        transaction_type: TransactionType,
        session_id: Optional[str],
        related_user_id: Optional[str],
        description: Optional[str],
    ) -> BalanceTransaction:
        entry = self.transaction_repository.create(
            user_id=user.id,
            session_id=session_id,
            related_user_id=related_user_id,
            type=transaction_type.value,
            amount=signed_amount,
            description=description,
        )
        self.logger.info(
            "Balance updated",
            extra={
                "user_id": user.id,
                "amount": str(signed_amount),
                "transaction_type": transaction_type.value,
                "session_id": session_id,
            },
        )
        return entry
