"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Result wrapper carrying either data or a named error kind
- BaseService: Base class with logging and transaction helpers

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Error Channels:
    - ServiceResult.failure: expected, named failures (business rules,
      gateway rejections). The error_code is the contract with callers.
    - Exceptions: infrastructure failures (database unavailable, bugs).
      These are not converted and propagate to the caller.

Usage:
    from core.services import BaseService, ServiceResult

    class ContributionService(BaseService):
        @classmethod
        def settle(cls, contribution_id: int) -> ServiceResult[Contribution]:
            contribution = Contribution.objects.filter(pk=contribution_id).first()
            if contribution is None:
                return ServiceResult.failure(
                    "Contribution not found",
                    error_code="CONTRIBUTION_NOT_FOUND",
                )

            with cls.atomic():
                contribution.status = ContributionStatus.COMPLETED
                contribution.save()

            cls.get_logger().info(f"Settled contribution {contribution.id}")
            return ServiceResult.success(contribution)

    # In view
    result = ContributionService.settle(pk)
    if result.success:
        return Response(ContributionSerializer(result.data).data)
    return Response(result.to_response(), status=404)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Human-readable error message if failed
        error_code: Machine-readable error kind for client handling
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        return ServiceResult.success(payment)

        # Failure case
        return ServiceResult.failure("Payment not found", "PAYMENT_NOT_FOUND")

        # Check result
        result = PaymentOrchestrator.get_payment(reference)
        if result.success:
            payment = result.data
        else:
            logger.info(f"Lookup failed: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Returns:
            ServiceResult with success=False and error details
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors carry their own message and error_code;
        anything else falls back to the exception class name.

        Args:
            exc: The caught exception
            error_code: Optional override for the error code

        Returns:
            ServiceResult with error details from exception
        """
        message = getattr(exc, "message", None) or str(exc)
        code = error_code or getattr(exc, "error_code", None)
        return cls(
            success=False,
            error=message,
            error_code=code or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            Dict with success status and data or error details. Never
            includes tracebacks or exception internals.
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management
    - Conversion of application errors into failed results

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.

        Example:
            with cls.atomic():
                contribution = Contribution.objects.select_for_update().get(pk=pk)
                contribution.status = ContributionStatus.COMPLETED
                contribution.save()
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
        extra: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """
        Convert an exception to a ServiceResult with logging.

        Args:
            exc: The caught exception
            context: Operation name prefixed to the log message
            log_level: Logging level (default ERROR)
            extra: Structured logging context

        Returns:
            Failed ServiceResult carrying the exception's error code
        """
        logger = cls.get_logger()
        message = f"{context}: {exc}" if context else str(exc)
        logger.log(
            log_level,
            message,
            extra=extra or {},
            exc_info=log_level >= logging.ERROR,
        )
        return ServiceResult.from_exception(exc)
