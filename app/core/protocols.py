"""
Protocol definitions for collaborator services.

Protocols define contracts that services must fulfill, enabling:
- Duck typing with static type checking
- Dependency inversion (depend on abstractions, not concretions)
- Easy mocking in tests

Available Protocols:
    ContributionSynchronizer: Contribution lookup and "mark paid" signal

Usage:
    from core.protocols import ContributionSynchronizer

    def settle(synchronizer: ContributionSynchronizer, contribution_id, reference):
        snapshot = synchronizer.lookup_contribution(contribution_id)
        if snapshot and not snapshot.is_settled:
            synchronizer.mark_contribution_paid(contribution_id, reference)

Note:
    - Protocols are primarily for type checking
    - @runtime_checkable allows isinstance() checks
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class ContributionSnapshot:
    """
    Read-only view of a contribution at lookup time.

    Attributes:
        id: Contribution identifier
        outstanding_amount: Amount still due, exact to the kobo
        status: Collaborator-defined status value
        is_settled: True when no further payment should be accepted
    """

    id: Any
    outstanding_amount: Decimal
    status: str
    is_settled: bool


@runtime_checkable
class ContributionSynchronizer(Protocol):
    """
    Protocol for the contribution collaborator consumed by payments.

    Example:
        class ContributionService:
            @classmethod
            def lookup_contribution(cls, contribution_id): ...

            @classmethod
            def mark_contribution_paid(cls, contribution_id, payment_reference): ...
    """

    def lookup_contribution(self, contribution_id: Any) -> ContributionSnapshot | None:
        """
        Look up a contribution.

        Returns:
            Snapshot of the contribution, or None if it does not exist
        """
        ...

    def mark_contribution_paid(self, contribution_id: Any, payment_reference: str) -> None:
        """
        Mark a contribution as paid by the given payment.

        Must be idempotent: calling it twice with the same reference is
        harmless. Raises if the contribution cannot be updated.
        """
        ...
