"""
Gateway adapter contract and shared HTTP plumbing.

Every payment provider is wrapped by one adapter implementing
PaymentGatewayAdapter. Adapters are stateless: they translate between
our payment vocabulary and a provider's wire format and never touch the
database.

HttpGatewayAdapter adds what the hosted-checkout providers share:
- A requests session with bearer authentication
- Bounded timeouts (PAYMENT_GATEWAY_TIMEOUT_SECONDS)
- Structured logging with timing metrics
- Translation of transport errors into GatewayUnavailableError /
  GatewayRejectedError
- A per-gateway circuit breaker that fails fast while a provider is down
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import requests
from django.conf import settings

from core.circuit_breaker import CircuitBreaker, CircuitOpenError
from payments.exceptions import GatewayRejectedError, GatewayUnavailableError

if TYPE_CHECKING:
    from payments.state_machines import PaymentGateway


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class InitializePaymentParams:
    """
    Parameters for opening a checkout session with a gateway.

    Attributes:
        reference: Our payment reference, used as the provider reference
        amount: Amount in major currency units
        payer_email: Payer contact
        callback_url: Where the provider redirects the payer afterwards
        currency: ISO 4217 code
        metadata: Extra key-value pairs echoed back by the provider
    """

    reference: str
    amount: Decimal
    payer_email: str
    callback_url: str = ""
    currency: str = "NGN"
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.reference:
            raise ValueError("reference is required")
        if not self.payer_email:
            raise ValueError("payer_email is required")


@dataclass
class InitializationResult:
    """
    Checkout session returned by a gateway.

    authorization_url is None for gateways without a hosted page (manual).
    """

    authorization_url: str | None
    gateway_reference: str | None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class VerificationResult:
    """
    Provider's view of a payment.

    Attributes:
        succeeded: Provider confirms the money was received
        status: Provider status string (success, failed, abandoned, ...)
        amount: Amount the provider collected, in major units
        gateway_reference: Provider transaction id
        raw_response: Full provider payload (stored on the record)
    """

    succeeded: bool
    status: str
    amount: Decimal | None = None
    gateway_reference: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Adapter Contract
# =============================================================================


class PaymentGatewayAdapter(ABC):
    """
    Contract every payment provider adapter implements.

    Attributes:
        gateway: PaymentGateway value this adapter serves
        signature_header: HTTP header carrying the webhook signature
        supports_verification: Whether verify() can query the provider
        notification_reference_field: Key under "data" holding our reference
    """

    gateway: PaymentGateway
    signature_header: str = ""
    supports_verification: bool = True
    notification_reference_field: str = "reference"

    @abstractmethod
    def initialize(self, params: InitializePaymentParams) -> InitializationResult:
        """
        Open a checkout session.

        Raises:
            GatewayUnavailableError: Network error, timeout or provider outage
            GatewayRejectedError: Provider refused the request
        """

    @abstractmethod
    def verify(self, reference: str) -> VerificationResult:
        """
        Ask the provider whether the payment went through.

        Safe to call repeatedly; the provider is the source of truth.

        Raises:
            GatewayUnavailableError: Network error, timeout or provider outage
            GatewayRejectedError: Provider refused the request
        """

    @abstractmethod
    def verify_signature(self, raw_payload: bytes, signature: str | None) -> bool:
        """
        Check a webhook signature.

        Pure function: no I/O, constant-time comparison.
        """

    def extract_reference_from_notification(self, raw_payload: bytes) -> str | None:
        """
        Recover our payment reference from a webhook body.

        Returns:
            The reference, or None if the payload is not parseable or
            carries no reference
        """
        try:
            payload = json.loads(raw_payload)
        except (TypeError, ValueError):
            return None
        if not isinstance(payload, dict):
            return None

        data = payload.get("data")
        if not isinstance(data, dict):
            return None

        reference = data.get(self.notification_reference_field)
        if not reference or not isinstance(reference, str):
            return None
        return reference

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")


# =============================================================================
# HTTP Adapters
# =============================================================================


class HttpGatewayAdapter(PaymentGatewayAdapter):
    """
    Base for gateways reached over a JSON REST API.

    Subclasses set base_url and secret_key (usually from settings) and
    implement the provider-specific request and response mapping.
    """

    base_url: str = ""

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.secret_key = secret_key if secret_key is not None else self.default_secret_key()
        self.base_url = (base_url or self.default_base_url()).rstrip("/")
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.circuit = self.circuit_for(self.gateway)

    def default_secret_key(self) -> str:
        return ""

    def default_base_url(self) -> str:
        return self.base_url

    @staticmethod
    def circuit_for(gateway: str) -> CircuitBreaker:
        """Circuit breaker shared by every adapter instance of a gateway."""
        return CircuitBreaker(
            name=f"gateway:{gateway}",
            failure_threshold=settings.PAYMENT_GATEWAY_CIRCUIT_FAILURE_THRESHOLD,
            recovery_timeout=settings.PAYMENT_GATEWAY_CIRCUIT_RECOVERY_TIMEOUT,
        )

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        reference: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Call the provider and return its decoded JSON body.

        Raises:
            GatewayUnavailableError: Circuit open, connection error,
                timeout, 5xx or an undecodable body
            GatewayRejectedError: 4xx or `status: false`
        """
        logger = self.get_logger()
        log_context = {
            "gateway": str(self.gateway),
            "operation": operation,
            "reference": reference,
        }

        start_time = time.time()
        try:
            with self.circuit.call():
                response = self._send(
                    method, path, operation, json_body, params, log_context, start_time
                )
        except CircuitOpenError as e:
            logger.warning("Gateway circuit open, failing fast", extra=log_context)
            raise GatewayUnavailableError(
                f"{self.gateway} is temporarily unavailable",
                gateway=str(self.gateway),
                details={"operation": operation, "circuit": "open"},
            ) from e

        duration_ms = (time.time() - start_time) * 1000

        try:
            body = response.json()
        except ValueError as e:
            logger.error(
                "Gateway returned a non-JSON body",
                extra={**log_context, "http_status": response.status_code},
            )
            raise GatewayUnavailableError(
                f"{self.gateway} returned an unreadable response",
                gateway=str(self.gateway),
                details={"operation": operation, "http_status": response.status_code},
            ) from e

        if response.status_code >= 400 or not self._is_accepted(body):
            message = self._error_message(body) or f"HTTP {response.status_code}"
            logger.warning(
                "Gateway rejected request",
                extra={
                    **log_context,
                    "http_status": response.status_code,
                    "gateway_message": message,
                    "duration_ms": duration_ms,
                },
            )
            raise GatewayRejectedError(
                f"{self.gateway} rejected {operation}: {message}",
                gateway=str(self.gateway),
                details={"operation": operation, "http_status": response.status_code},
            )

        logger.info(
            "Gateway operation completed",
            extra={
                **log_context,
                "http_status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return body

    def _send(
        self,
        method: str,
        path: str,
        operation: str,
        json_body: dict[str, Any] | None,
        params: dict[str, Any] | None,
        log_context: dict[str, Any],
        start_time: float,
    ) -> requests.Response:
        """
        Perform the HTTP call inside the circuit.

        Anything raised here counts as a circuit failure. A response below
        500 means the provider is up, even when it rejects the request.

        The timeout bounds each connect and each read, not the whole call,
        so a slowly trickling response can outlive the payment lock. The
        version check in PaymentRecord.commit_transition still refuses a
        write from a verification that lost its lock.
        """
        self.get_logger().info("Starting gateway operation", extra=log_context)

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=json_body,
                params=params,
                headers={
                    "Authorization": f"Bearer {self.secret_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            self._log_unavailable(log_context, start_time, "timeout")
            raise GatewayUnavailableError(
                f"{self.gateway} {operation} timed out after {self.timeout}s",
                gateway=str(self.gateway),
                details={"operation": operation},
            ) from e
        except requests.RequestException as e:
            self._log_unavailable(log_context, start_time, "connection_error")
            raise GatewayUnavailableError(
                f"Could not reach {self.gateway}",
                gateway=str(self.gateway),
                details={"operation": operation},
            ) from e

        if response.status_code >= 500:
            self._log_unavailable(log_context, start_time, "server_error")
            raise GatewayUnavailableError(
                f"{self.gateway} returned HTTP {response.status_code}",
                gateway=str(self.gateway),
                details={"operation": operation, "http_status": response.status_code},
            )

        return response

    def _log_unavailable(
        self,
        log_context: dict[str, Any],
        start_time: float,
        failure: str,
    ) -> None:
        self.get_logger().error(
            "Gateway unavailable",
            extra={
                **log_context,
                "failure": failure,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )

    def _is_accepted(self, body: Any) -> bool:
        """Whether a 2xx body reports success at the API level."""
        return isinstance(body, dict)

    def _error_message(self, body: Any) -> str:
        if isinstance(body, dict):
            return str(body.get("message") or "")
        return ""

    @staticmethod
    def _data(body: dict[str, Any]) -> dict[str, Any]:
        data = body.get("data")
        return data if isinstance(data, dict) else {}
