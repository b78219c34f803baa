"""
Pytest fixtures shared by every payments test package.

Provides:
- A Redis double for DistributedLock (autouse, no Redis needed)
- Contributions and payment records in common states
- Mock gateway adapters for the orchestrator
- An authenticated API client
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from contributions.models import ContributionStatus
from contributions.tests.factories import ContributionFactory
from payments.adapters import (
    InitializationResult,
    PaymentGatewayAdapter,
    PaystackAdapter,
    VerificationResult,
)
from payments.services import PaymentOrchestrator
from payments.state_machines import PaymentGateway, PaymentStatus
from payments.tests.factories import PaymentRecordFactory, UserFactory


# =============================================================================
# Infrastructure Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def mock_redis_lock(mocker):
    """
    Mock Redis for distributed locking.

    Every SET NX succeeds and every release script reports success.
    Override set.return_value / side_effect to simulate a held lock.
    """
    mock_redis = mocker.MagicMock()
    mock_redis.set.return_value = True
    mock_redis.get.return_value = None
    mock_redis.delete.return_value = 1
    mock_redis.eval.return_value = 1

    mocker.patch(
        "payments.locks.get_redis_connection",
        return_value=mock_redis,
    )
    return mock_redis


# =============================================================================
# Contribution and Payment Fixtures
# =============================================================================


@pytest.fixture
def contribution(db):
    """A PENDING contribution of 50,000.00."""
    return ContributionFactory(amount=Decimal("50000.00"))


@pytest.fixture
def settled_contribution(db):
    """A COMPLETED contribution."""
    return ContributionFactory(settled=True)


@pytest.fixture
def pending_payment(db, contribution):
    """A PENDING Paystack payment with a gateway session."""
    return PaymentRecordFactory(contribution=contribution)


@pytest.fixture
def succeeded_payment(db, contribution):
    """A SUCCEEDED payment whose contribution was marked paid."""
    payment = PaymentRecordFactory(
        contribution=contribution,
        status=PaymentStatus.SUCCEEDED,
        paid_at=timezone.now(),
        contribution_synced_at=timezone.now(),
    )
    contribution.status = ContributionStatus.COMPLETED
    contribution.payment_reference = payment.reference
    contribution.save()
    return payment


# =============================================================================
# Gateway Adapter Fixtures
# =============================================================================


@pytest.fixture
def mock_adapter(mocker):
    """
    Mock Paystack adapter installed in the orchestrator registry.

    initialize() returns a checkout session; verify() reports success for
    50,000.00. Tests override return values or side effects as needed.
    """
    adapter = MagicMock(spec=PaymentGatewayAdapter)
    adapter.gateway = PaymentGateway.PAYSTACK
    adapter.signature_header = PaystackAdapter.signature_header
    adapter.supports_verification = True
    adapter.initialize.return_value = InitializationResult(
        authorization_url="https://checkout.paystack.com/abc123",
        gateway_reference="ACCESS-abc123",
        raw_response={"status": True, "data": {"access_code": "abc123"}},
    )
    adapter.verify.return_value = VerificationResult(
        succeeded=True,
        status="success",
        amount=Decimal("50000.00"),
        gateway_reference="4099260516",
        raw_response={"status": True, "data": {"status": "success"}},
    )
    adapter.verify_signature.return_value = True

    mocker.patch.dict(
        PaymentOrchestrator.ADAPTERS,
        {PaymentGateway.PAYSTACK: MagicMock(return_value=adapter)},
    )
    return adapter


@pytest.fixture
def mock_synchronizer(mocker):
    """Replace the contribution collaborator with a mock."""
    synchronizer = MagicMock()
    mocker.patch.object(PaymentOrchestrator, "contribution_synchronizer", synchronizer)
    return synchronizer


@pytest.fixture
def mock_sync_task(mocker):
    """Prevent contribution sync retries from being queued."""
    return mocker.patch("payments.tasks.retry_contribution_sync.delay")


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def api_user(db):
    return UserFactory()


@pytest.fixture
def api_client(api_user):
    """APIClient authenticated as a regular user."""
    client = APIClient()
    client.force_authenticate(user=api_user)
    return client


@pytest.fixture
def anonymous_client():
    return APIClient()
