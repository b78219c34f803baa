"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    OptimisticLockMixin: Version counter with compare-and-set updates

Usage:
    from core.models import BaseModel
    from core.model_mixins import OptimisticLockMixin, UUIDPrimaryKeyMixin

    class PaymentRecord(UUIDPrimaryKeyMixin, OptimisticLockMixin, BaseModel):
        status = models.CharField(max_length=20)

    # Only writes if nobody changed the row since it was loaded
    if not record.conditional_update({"status": "pending"}, status="processing"):
        ...  # lost the race

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import models
from django.db.models import F

if TYPE_CHECKING:
    from typing import Any


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    IDs are opaque to clients and don't reveal record count or order.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class OptimisticLockMixin(models.Model):
    """
    Optimistic locking via a monotonically increasing version column.

    Every save() on an existing row bumps the version atomically with
    F("version") + 1. conditional_update() goes further and only writes
    when the row still matches both the loaded version and any extra
    expected column values, which makes it a database-level
    compare-and-set.

    Fields:
        version: Incremented on every write
    """

    version = models.PositiveIntegerField(
        default=1,
        help_text="Optimistic locking version, incremented on every write",
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """Save with version auto-increment on update."""
        is_update = (
            not self._state.adding
            and self.pk is not None
            and not kwargs.get("force_insert", False)
        )
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    def conditional_update(self, expected: dict[str, Any], **values: Any) -> bool:
        """
        Write values only if the row still matches what this instance loaded.

        Args:
            expected: Extra column values the row must still have
            **values: Column values to write

        Returns:
            True if the row was updated, False if it changed underneath us.
            On success the instance mirrors the written values and the new
            version.
        """
        updated = (
            type(self)
            ._default_manager.filter(pk=self.pk, version=self.version, **expected)
            .update(version=F("version") + 1, **values)
        )
        if not updated:
            return False

        for name, value in values.items():
            setattr(self, name, value)
        self.version += 1
        return True
