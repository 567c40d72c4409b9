"""
Scheduling signals.

shift_reassigned is sent whenever a shift changes owner, by the marketplace
engine during a resolution or by the admin on a manual edit. Receivers run
inside the transaction that made the change.

Arguments:
  shift                 the Shift, already carrying its new assignee
  previous_assignee_id  owner before the change (None if it was open)
  request               the ShiftRequest that caused it, or None for admin edits
  actor                 the user responsible
"""

from django.dispatch import Signal

shift_reassigned = Signal()
