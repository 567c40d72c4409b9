"""
Marketplace service layer.

MarketplaceFacade is the operation surface callers (views, management
commands, tests) use. Each method resolves the acting identity from the
authenticated principal, then delegates to the lifecycle engine. There is no
business logic here beyond identity resolution.

Usage:
    from apps.marketplace.services import marketplace

    request = marketplace.create(request.user, "GIVEAWAY", shift.pk)
    request = marketplace.claim(colleague, request.pk)
"""

from django.contrib.auth import get_user_model

from .engine import RequestLifecycleEngine
from .exceptions import NotFound
from .identity import IdentityResolver
from .models import ShiftRequest


class MarketplaceFacade:

    def __init__(self, engine: RequestLifecycleEngine = None, identity: IdentityResolver = None):
        self.engine = engine or RequestLifecycleEngine()
        self.identity = identity or IdentityResolver()

    def create(self, principal, kind, source_shift_id, target_shift_id=None,
               target_staff_id=None, notes: str = "", confirmed_staff=None) -> ShiftRequest:
        """
        Open a giveaway, pickup or swap as the acting staff member.

        Raises:
            NotFound: Unknown shift or target staff member.
        """
        actor = self.identity.resolve_acting_identity(principal, confirmed_staff)
        target_staff = self._load_user(target_staff_id) if target_staff_id is not None else None
        return self.engine.create(
            kind,
            actor,
            source_shift_id,
            target_shift=target_shift_id,
            target_staff=target_staff,
            notes=notes,
        )

    def claim(self, principal, request_id, confirmed_staff=None) -> ShiftRequest:
        actor = self.identity.resolve_acting_identity(principal, confirmed_staff)
        return self.engine.claim(request_id, actor)

    def respond_to_swap(self, principal, request_id, accept: bool, confirmed_staff=None) -> ShiftRequest:
        actor = self.identity.resolve_acting_identity(principal, confirmed_staff)
        return self.engine.respond_to_swap(request_id, actor, accept)

    def resolve(self, principal, request_id, approve: bool, note: str = "", confirmed_staff=None) -> ShiftRequest:
        """Administrator decision. Shared logins with approval rights may decide directly."""
        actor = self.identity.resolve_acting_identity(principal, confirmed_staff, require_individual=False)
        return self.engine.resolve(request_id, actor, approve, note)

    def cancel(self, principal, request_id, confirmed_staff=None) -> ShiftRequest:
        actor = self.identity.resolve_acting_identity(principal, confirmed_staff, require_individual=False)
        return self.engine.cancel(request_id, actor)

    @staticmethod
    def _load_user(user_id):
        User = get_user_model()
        try:
            return User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Staff member {user_id} not found.")


marketplace = MarketplaceFacade()
