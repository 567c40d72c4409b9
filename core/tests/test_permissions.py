from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from apps.accounts.models import User
from apps.marketplace.tests.factories import grant, make_role, make_user
from core.permissions import has_permission, roles_with_permission


class TestHasPermission(TestCase):
    def setUp(self):
        self.consultants = make_role("Consultant")
        self.registrars = make_role("Registrar")
        self.user = make_user("Alice", role=self.consultants, can_edit_rota=True)

    def test_capability_is_per_role(self):
        self.assertTrue(has_permission(self.user, "can_edit_rota", self.consultants))
        self.assertTrue(has_permission(self.user, "can_edit_rota", self.consultants.pk))
        self.assertFalse(has_permission(self.user, "can_edit_rota", self.registrars))

    def test_any_role(self):
        self.assertTrue(has_permission(self.user, "can_work_shifts"))
        self.assertFalse(has_permission(self.user, "can_edit_staff"))

    def test_flag_must_be_set(self):
        grant(self.user, self.registrars)
        self.assertFalse(has_permission(self.user, "can_work_shifts", self.registrars))

    def test_superuser_holds_everything(self):
        root = User.objects.create_superuser(email="root@example.com", password="pass123")
        self.assertTrue(has_permission(root, "can_edit_staff", self.registrars))

    def test_anonymous_and_inactive(self):
        self.assertFalse(has_permission(AnonymousUser(), "can_work_shifts"))
        self.user.is_active = False
        self.assertFalse(has_permission(self.user, "can_edit_rota", self.consultants))

    def test_unknown_capability(self):
        with self.assertRaises(ValueError):
            has_permission(self.user, "can_fly")


class TestRolesWithPermission(TestCase):
    def test_roles(self):
        consultants = make_role("Consultant")
        registrars = make_role("Registrar")
        user = make_user("Alice", role=consultants, can_edit_rota=True)
        grant(user, registrars, can_work_shifts=True)

        self.assertEqual(list(roles_with_permission(user, "can_edit_rota")), [consultants])
        self.assertEqual(set(roles_with_permission(user, "can_work_shifts")), {consultants, registrars})

        root = User.objects.create_superuser(email="root@example.com", password="pass123")
        self.assertEqual(roles_with_permission(root, "can_edit_rota").count(), 2)
