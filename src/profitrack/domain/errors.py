"""Shared domain error messages and error types."""

from decimal import Decimal

from profitrack.utils.money import percent_of, to_money


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as a write that lost an optimistic race."""


class UpstreamUnavailableError(DomainError):
    """An external collaborator could not provide its data."""


class OverAllocationError(ValidationError):
    """Allocating the requested amount would exceed the transaction."""

    def __init__(
        self,
        transaction_id: int,
        transaction_amount: Decimal,
        attempted_amount: Decimal,
        allocated_amount: Decimal,
    ):
        self.transaction_id = transaction_id
        self.transaction_amount = transaction_amount
        self.attempted_amount = attempted_amount
        self.allocated_amount = allocated_amount
        self.remaining_amount = transaction_amount - allocated_amount
        allocated_pct = to_money(percent_of(allocated_amount, transaction_amount))
        super().__init__(
            f"Transaction {transaction_id} (${to_money(transaction_amount):,}) is already "
            f"{allocated_pct}% allocated (${to_money(allocated_amount):,}). Adding "
            f"${to_money(attempted_amount):,} would exceed 100%; "
            f"${to_money(self.remaining_amount):,} remains."
        )


class SplitMismatchError(ValidationError):
    """An override split does not add up to its line total."""

    def __init__(self, description: str, line_total: Decimal, income: Decimal, cost: Decimal):
        self.description = description
        self.line_total = line_total
        self.income = income
        self.cost = cost
        super().__init__(
            f"Invalid split for '{description}': income + cost ({income + cost}) "
            f"must equal the line total ({line_total})"
        )


def job_not_found(job_id: int) -> str:
    """Return message for missing job."""
    return f"Job {job_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def template_not_found(template_id: int) -> str:
    """Return message for missing cost template."""
    return f"Cost template {template_id} not found"


def allocation_not_found(allocation_id: int) -> str:
    """Return message for missing allocation."""
    return f"Allocation {allocation_id} not found"
