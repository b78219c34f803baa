"""
Per-payment mutual exclusion.

The callback redirect and the gateway webhook can both verify the same
payment at the same moment. DistributedLock serializes them per payment
reference across web and Celery processes; compare-and-set writes on
PaymentRecord (see core.model_mixins.OptimisticLockMixin) catch anything
that slips past an expired lock.

Usage:
    from payments.locks import DistributedLock

    with DistributedLock.for_payment(reference):
        record = PaymentRecord.objects.get(reference=reference)
        ...

    # Non-blocking
    lock = DistributedLock("reconcile:run", ttl=300, blocking=False)
    try:
        lock.acquire()
    except LockAcquisitionError:
        return  # another worker is on it
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING

from django.conf import settings

from django_redis import get_redis_connection

from payments.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


class DistributedLock:
    """
    Redis lock with TTL and owner token.

    Acquisition is SET key token NX EX ttl. Release runs as a Lua script
    that checks the token first, so a process never frees a lock another
    process re-acquired after our TTL ran out.

    Args:
        key: Lock identifier (prefixed with "lock:")
        ttl: Seconds until the lock auto-expires
        blocking: If True, acquire() polls until timeout
        timeout: Maximum seconds to wait in blocking mode

    Note:
        The TTL should exceed the gateway timeout. A verification that
        outlives its lock is refused by the version check when it writes.
    """

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    POLL_INTERVAL = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    @classmethod
    def for_payment(cls, reference: str) -> DistributedLock:
        """Lock guarding every status change of one payment."""
        return cls(
            f"payment:{reference}",
            ttl=settings.PAYMENT_LOCK_TTL_SECONDS,
            timeout=settings.PAYMENT_LOCK_TIMEOUT_SECONDS,
        )

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Returns:
            True once the lock is held

        Raises:
            LockAcquisitionError: Lock held elsewhere (non-blocking) or not
                released within timeout (blocking)
        """
        token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            deadline = time.monotonic() + self.timeout
            while True:
                if redis.set(self.key, token, nx=True, ex=self.ttl):
                    self._token = token
                    return True
                if time.monotonic() >= deadline:
                    break
                time.sleep(self.POLL_INTERVAL)

            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not redis.set(self.key, token, nx=True, ex=self.ttl):
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        self._token = token
        return True

    def release(self) -> bool:
        """
        Release the lock if we still own it.

        Returns:
            True if released, False if we never held it or it expired
        """
        if self._token is None:
            return False

        result = self._get_redis().eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


__all__ = [
    "DistributedLock",
]
