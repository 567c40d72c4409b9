"""
Acting-identity resolution.

A request is normally made by the logged-in user. Shared ward logins
(User.is_generic_login) may browse, but before they create, claim or answer a
request they must confirm which staff member is standing at the terminal.
"""

import logging

from django.contrib.auth import get_user_model

from .exceptions import AmbiguousActor, Forbidden, NotFound

logger = logging.getLogger(__name__)


class IdentityResolver:

    def resolve_acting_identity(self, principal, confirmed_staff=None, require_individual: bool = True):
        """
        Return the user the operation is performed as.

        Args:
            principal: The authenticated user making the call.
            confirmed_staff: A User or primary key the principal says is acting.
            require_individual: When True, a generic principal must confirm
                a staff member.

        Returns:
            The acting User.

        Raises:
            Forbidden: Unauthenticated principal, a non-generic principal
                acting for someone else, or an inactive/generic confirmed user.
            NotFound: The confirmed staff member does not exist.
            AmbiguousActor: A generic principal did not confirm anyone.
        """
        if principal is None or not principal.is_authenticated or not principal.is_active:
            raise Forbidden("Authentication required.")

        if confirmed_staff is None:
            if principal.is_generic_login and require_individual:
                raise AmbiguousActor(
                    "This is a shared login. Confirm which staff member is making the change."
                )
            return principal

        staff = self._load(confirmed_staff)

        if staff.pk == principal.pk:
            if principal.is_generic_login and require_individual:
                raise AmbiguousActor("A shared login cannot act as itself.")
            return principal

        if not principal.is_generic_login:
            logger.warning(
                "User %s tried to act on behalf of user %s.", principal.pk, staff.pk
            )
            raise Forbidden("You cannot act on behalf of another staff member.")

        if not staff.is_active or staff.is_generic_login:
            raise Forbidden("The confirmed staff member cannot act in the marketplace.")

        return staff

    @staticmethod
    def _load(confirmed_staff):
        User = get_user_model()
        if isinstance(confirmed_staff, User):
            return confirmed_staff
        try:
            return User.objects.get(pk=confirmed_staff)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Staff member {confirmed_staff} not found.")
