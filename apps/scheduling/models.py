"""
Scheduling models for the rota marketplace.

Defines the Shift: a dated time block belonging to a Role, owned by at most
one staff member. A shift with no assignee is open and may be picked up
through the marketplace.

Ownership (assignee) changes through exactly two paths:
  1. The marketplace lifecycle engine, when a request is resolved
  2. Administrative CRUD (Django admin), which locks the row first

Both paths take a row lock, so an admin edit and a marketplace resolution on
the same shift serialize instead of silently overwriting each other.
"""

import uuid

from django.conf import settings
from django.db import models


class ShiftQuerySet(models.QuerySet):
    """Query helpers shared by the marketplace engine and the admin."""

    def lock(self, ids):
        """
        Lock the given shifts for the rest of the current transaction.

        Rows are locked in ascending primary-key order so that two
        transactions touching the same pair of shifts always queue on the
        same row first.

        Args:
            ids: Iterable of shift primary keys.

        Returns:
            Dict mapping primary key to the locked Shift instance.
        """
        rows = (
            self.select_for_update()
            .filter(pk__in=set(ids))
            .order_by("pk")
        )
        return {shift.pk: shift for shift in rows}

    def open(self):
        """Return shifts with no current owner."""
        return self.filter(assignee__isnull=True)

    def owned_by(self, user):
        """Return shifts currently owned by the given user."""
        return self.filter(assignee=user)


class Shift(models.Model):
    """
    A scheduled work block for a role on a given date.

    The id is a UUID so shift references stay stable across systems that
    import or export the rota. Shifts referenced by marketplace requests
    cannot be deleted; requests are kept as history.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    role = models.ForeignKey(
        "accounts.Role",
        on_delete=models.PROTECT,
        related_name="shifts",
    )
    # Null means the shift is open
    assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="shifts",
    )

    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField(help_text="May be earlier than start_time for overnight shifts.")
    label = models.CharField(max_length=50, blank=True, help_text="e.g. 'Day', 'Night', 'On call'.")

    published = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_shifts",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ShiftQuerySet.as_manager()

    class Meta:
        verbose_name = "Shift"
        verbose_name_plural = "Shifts"
        ordering = ["date", "start_time"]
        indexes = [
            models.Index(fields=["role", "date"], name="shift_role_date_idx"),
            models.Index(fields=["assignee", "date"], name="shift_assignee_date_idx"),
        ]

    def __str__(self) -> str:
        """Return a human-readable shift description."""
        owner = self.assignee.get_short_name() if self.assignee_id else "open"
        return f"{self.role.name} | {self.date:%Y-%m-%d} {self.start_time:%H:%M} | {owner}"

    @property
    def is_open(self) -> bool:
        """Return True if nobody currently owns the shift."""
        return self.assignee_id is None

    @property
    def is_overnight(self) -> bool:
        """Return True if the shift ends on the following day."""
        return self.end_time <= self.start_time
