"""
Factory Boy factories for contribution test data.

Usage:
    from contributions.tests.factories import ContributionFactory

    contribution = ContributionFactory(amount=Decimal("50000.00"))
    settled = ContributionFactory(settled=True)
"""

from decimal import Decimal

import factory
from django.utils import timezone

from contributions.models import Contribution, ContributionStatus, ContributionType


class ContributionFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Contribution instances.

    Defaults to a PENDING mandatory contribution of 50,000.00.
    """

    class Meta:
        model = Contribution

    reference_number = factory.Sequence(lambda n: f"CON-2026-{n:06d}")
    member_number = factory.Sequence(lambda n: f"MEM-{n:04d}")
    contribution_type = ContributionType.MANDATORY
    amount = Decimal("50000.00")
    status = ContributionStatus.PENDING

    class Params:
        settled = factory.Trait(
            status=ContributionStatus.COMPLETED,
            payment_reference=factory.Sequence(lambda n: f"PMT-1700000000000-{n:08X}"),
            processed_at=factory.LazyFunction(timezone.now),
        )
