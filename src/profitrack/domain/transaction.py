"""Transaction domain service."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from profitrack.database.base import Database
from profitrack.domain.entities import BankActivity, Transaction
from profitrack.domain.errors import NotFoundError, ValidationError, transaction_not_found

REVENUE_CATEGORY = "revenue"
UNCATEGORIZED = "Uncategorized"


def is_income(transaction: Transaction) -> bool:
    """Revenue-categorized or incoming money counts as income."""
    category = (transaction.category or "").strip().lower()
    return category == REVENUE_CATEGORY or transaction.amount > 0


def is_expense(transaction: Transaction) -> bool:
    """Outgoing money that is not categorized as revenue."""
    return transaction.amount < 0 and not is_income(transaction)


class TransactionService:
    """Service for managing bank transactions."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_transaction(
        self,
        amount: Decimal,
        date: date,
        name: str,
        merchant_name: Optional[str] = None,
        category: Optional[str] = None,
    ) -> int:
        """Create a transaction.

        Args:
            amount: Signed amount, negative for money out
            date: Transaction date
            name: Transaction name as reported by the bank
            merchant_name: Optional merchant name
            category: Optional category label

        Returns:
            Transaction ID

        Raises:
            ValidationError: If the name is empty or the amount is zero
        """
        if not name or not name.strip():
            raise ValidationError("Transaction name is required")
        if amount == 0:
            raise ValidationError("Transaction amount must not be zero")

        return self.db.create_transaction(
            amount=amount,
            date=date,
            name=name.strip(),
            merchant_name=merchant_name,
            category=category,
        )

    def get_transaction(self, transaction_id: int) -> Transaction:
        """Get transaction by ID.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return transaction

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Transaction]:
        """List transactions in a date range."""
        return self.db.list_transactions(start_date=start_date, end_date=end_date)

    def bank_activity(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transactions: Optional[Iterable[Transaction]] = None,
    ) -> BankActivity:
        """Summarize income and expenses of bank transactions.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            transactions: Transactions to summarize instead of querying

        Returns:
            BankActivity with expenses broken down by category, largest first
        """
        if transactions is None:
            transactions = self.list_transactions(start_date=start_date, end_date=end_date)

        income = Decimal("0")
        expenses = Decimal("0")
        income_count = 0
        expense_count = 0
        by_category: dict[str, Decimal] = defaultdict(Decimal)

        for txn in transactions:
            if is_income(txn):
                income += txn.magnitude
                income_count += 1
            elif is_expense(txn):
                expenses += txn.magnitude
                expense_count += 1
                by_category[txn.category or UNCATEGORIZED] += txn.magnitude

        breakdown = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))
        return BankActivity(
            income=income,
            expenses=expenses,
            income_count=income_count,
            expense_count=expense_count,
            expenses_by_category=tuple(breakdown),
        )
