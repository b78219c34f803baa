"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps. Business
logic does not live here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - OptimisticLockMixin: Version counter with compare-and-set updates

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ConflictError: State conflicts (concurrent modifications, etc.)
    - ExternalServiceError: Third-party service failures

Protocols (import from core.protocols):
    - ContributionSynchronizer: Contract consumed by the payments app
    - ContributionSnapshot: Read-only contribution view

Resilience (import from core.circuit_breaker):
    - CircuitBreaker: Cache-backed circuit breaker
    - CircuitOpenError: Fail-fast signal from an open circuit

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
)

# Protocols (no Django dependencies)
from .protocols import ContributionSnapshot, ContributionSynchronizer

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ConflictError",
    "ExternalServiceError",
    # Protocols
    "ContributionSnapshot",
    "ContributionSynchronizer",
]
