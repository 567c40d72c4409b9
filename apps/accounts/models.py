"""
Accounts models for the rota marketplace.

Defines the custom User model, the Role a shift belongs to, and the per-role
permission set (UserRole) that gates marketplace actions.

Key design decisions:
  - AbstractBaseUser gives us full control over the user model
  - Permissions are per role, not global: a consultant admin cannot approve
    registrar swaps unless they also hold can_edit_rota on that role
  - Superusers are the "super-actor" and pass every capability check
  - Shared ward logins are flagged with is_generic_login; they must name the
    staff member they act for before touching shift ownership
"""

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Role(models.Model):
    """
    A staff group within a workplace (e.g. "Consultant", "Registrar").

    Shifts belong to exactly one role. The marketplace_auto_approve flag decides
    whether marketplace transfers in this role complete without an administrator.
    """

    name = models.CharField(max_length=100)
    workplace = models.CharField(max_length=150, blank=True)
    marketplace_auto_approve = models.BooleanField(
        default=False,
        help_text="Claims and accepted swaps complete immediately, without admin approval.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["workplace", "name"]
        verbose_name = "Role"
        verbose_name_plural = "Roles"

    def __str__(self) -> str:
        if self.workplace:
            return f"{self.name} ({self.workplace})"
        return self.name


class UserManager(BaseUserManager):
    """Custom manager for the User model (email-based auth)."""

    def create_user(self, email: str, password: str = None, **extra_fields) -> "User":
        """
        Create and save a regular user with the given email and password.

        Args:
            email: The user's email address (used as login identifier).
            password: The raw password (will be hashed). None sets an unusable password.
            **extra_fields: Additional fields to set on the User model.

        Returns:
            The newly created User instance.

        Raises:
            ValueError: If email is not provided.
        """
        if not email:
            raise ValueError(_("The Email field must be set"))
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email: str, password: str, **extra_fields) -> "User":
        """
        Create and save a superuser with the given email and password.

        Superusers bypass every per-role permission check.
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom user model for the rota marketplace.

    Uses email as the unique identifier. What a user may do is decided by their
    UserRole rows (see core.permissions.has_permission), except superusers who
    may do everything.
    """

    email = models.EmailField(_("email address"), unique=True)
    first_name = models.CharField(_("first name"), max_length=150, blank=True)
    last_name = models.CharField(_("last name"), max_length=150, blank=True)
    short_name = models.CharField(
        max_length=20,
        blank=True,
        help_text="Initials or nickname shown on the rota.",
    )

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)  # Django admin access

    # Shared ward/department login. Such accounts can browse the marketplace
    # but must confirm which staff member they act for before mutating it.
    is_generic_login = models.BooleanField(default=False)

    date_joined = models.DateTimeField(default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = _("user")
        verbose_name_plural = _("users")
        ordering = ["last_name", "first_name"]

    def __str__(self) -> str:
        return self.get_full_name() or self.email

    def get_full_name(self) -> str:
        """Return the first_name plus the last_name, with a space in between."""
        return f"{self.first_name} {self.last_name}".strip()

    def get_short_name(self) -> str:
        """Return the rota short name, falling back to the first name."""
        return self.short_name or self.first_name

    @property
    def is_super_admin(self) -> bool:
        """Superusers are the marketplace's super-actor."""
        return self.is_superuser


class UserRole(models.Model):
    """
    A user's membership of a role, with the capabilities they hold there.

    can_edit_rota is the administrative capability: approving or rejecting
    marketplace requests and cancelling them on someone's behalf.
    can_work_shifts makes the user eligible to take shifts of this role.
    """

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="user_roles")
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name="user_roles")

    can_edit_rota = models.BooleanField(default=False)
    can_work_shifts = models.BooleanField(default=False)
    can_edit_staff = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "User Role"
        verbose_name_plural = "User Roles"
        constraints = [
            models.UniqueConstraint(fields=["user", "role"], name="unique_user_role"),
        ]

    def __str__(self) -> str:
        return f"{self.user} @ {self.role}"

    def clean(self) -> None:
        """
        Reject shift-working capability on shared logins.

        Raises:
            ValidationError: If a generic login is given can_work_shifts.
        """
        if self.can_work_shifts and self.user_id and self.user.is_generic_login:
            raise ValidationError(
                {"can_work_shifts": "Generic accounts cannot hold shifts."}
            )
