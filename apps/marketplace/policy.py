"""
Approval policy: does a transfer in this role need an administrator?

The answer comes from Role.marketplace_auto_approve and is read from the
database on every call, so an administrator flipping the flag takes effect for
the very next resolution.
"""

import enum

from apps.accounts.models import Role


class ApprovalDecision(enum.Enum):
    AUTO_APPROVE = "auto_approve"
    REQUIRES_APPROVAL = "requires_approval"


class ApprovalPolicy:
    """Per-role auto-approve lookup."""

    def decide(self, role) -> ApprovalDecision:
        """
        Return the approval decision for a role.

        Args:
            role: A Role instance or primary key. Instances are re-read.

        Returns:
            AUTO_APPROVE if the role is flagged, else REQUIRES_APPROVAL.
            A role that no longer exists requires approval.
        """
        role_id = getattr(role, "pk", role)
        auto = (
            Role.objects.filter(pk=role_id)
            .values_list("marketplace_auto_approve", flat=True)
            .first()
        )
        if auto:
            return ApprovalDecision.AUTO_APPROVE
        return ApprovalDecision.REQUIRES_APPROVAL

    def decide_for(self, shifts) -> ApprovalDecision:
        """
        Combine the decision over every shift's role.

        A transfer is auto-approved only when every role involved auto-approves.
        """
        role_ids = {shift.role_id for shift in shifts}
        if not role_ids:
            return ApprovalDecision.REQUIRES_APPROVAL
        for role_id in sorted(role_ids):
            if self.decide(role_id) is ApprovalDecision.REQUIRES_APPROVAL:
                return ApprovalDecision.REQUIRES_APPROVAL
        return ApprovalDecision.AUTO_APPROVE
