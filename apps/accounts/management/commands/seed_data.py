"""
Seed the rota marketplace with a month of demo data.

Smoke-test scenarios included:
  1. Consultant role requires approval; Registrar role auto-approves
  2. An open giveaway waiting to be claimed (Consultant)
  3. A giveaway claimed and parked in PENDING_APPROVAL (Consultant)
  4. A completed auto-approved giveaway (Registrar)
  5. A swap proposed to a named colleague (Registrar)
  6. An open shift posted for pickup
  7. A shared ward login that must confirm who is acting

All requests are created through the marketplace facade, so the audit trail
and notifications look exactly like real usage.

Usage:
    python manage.py seed_data
    python manage.py seed_data --reset
"""

from datetime import date, time, timedelta

from django.core.management.base import BaseCommand
from django.db import transaction

PASSWORD = "RotaMarket2026!"

SHIFT_PATTERNS = [
    ("Day", time(8, 0), time(18, 0)),
    ("Night", time(20, 0), time(8, 0)),
]


class Command(BaseCommand):
    help = "Seed the rota marketplace with a month of demo data"

    def add_arguments(self, parser):
        parser.add_argument("--reset", action="store_true",
                            help="Delete all existing data first (DESTRUCTIVE).")

    def handle(self, *args, **options):
        if options["reset"]:
            self.stdout.write(self.style.WARNING("Resetting all data..."))
            self._reset_data()

        self.stdout.write("Seeding rota marketplace demo data...")

        roles = self._create_roles()
        admin = self._create_admin(roles)
        staff = self._create_staff(roles)
        self._create_ward_login(roles)
        shifts = self._create_rota(roles, staff, admin)
        self._create_requests(staff, shifts)

        self.stdout.write(self.style.SUCCESS("\nSeed complete!\n"))
        self.stdout.write("=" * 55)
        self.stdout.write(f"ADMIN:  rota.admin@example.org / {PASSWORD}")
        self.stdout.write(f"STAFF:  alice, bob, carol, dan @example.org / {PASSWORD}")
        self.stdout.write(f"WARD:   ward.a@example.org / {PASSWORD} (shared login)")
        self.stdout.write("=" * 55)

    # ------------------------------------------------------------------
    def _reset_data(self):
        from apps.accounts.models import Role, User
        from apps.audit.models import AuditLog
        from apps.marketplace.models import ShiftRequest
        from apps.notifications.models import Notification
        from apps.scheduling.models import Shift

        for model in [AuditLog, Notification, ShiftRequest, Shift, Role]:
            model.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        self.stdout.write(self.style.WARNING("  Cleared existing data."))

    # ------------------------------------------------------------------
    def _create_roles(self) -> dict:
        from apps.accounts.models import Role

        roles = {}
        for key, name, auto in [
            ("consultant", "Consultant", False),
            ("registrar", "Registrar", True),
        ]:
            obj, created = Role.objects.get_or_create(
                name=name,
                workplace="General Hospital",
                defaults={"marketplace_auto_approve": auto},
            )
            roles[key] = obj
            if created:
                self.stdout.write(f"  + Role: {obj} (auto-approve={auto})")
        return roles

    # ------------------------------------------------------------------
    def _create_user(self, email, first, last, short, **extra):
        from apps.accounts.models import User

        user, created = User.objects.get_or_create(
            email=email,
            defaults={"first_name": first, "last_name": last, "short_name": short, **extra},
        )
        if created:
            user.set_password(PASSWORD)
            user.save()
            self.stdout.write(f"  + User: {email}")
        return user

    def _create_admin(self, roles: dict):
        from apps.accounts.models import UserRole

        admin = self._create_user("rota.admin@example.org", "Rota", "Admin", "RA", is_staff=True)
        for role in roles.values():
            UserRole.objects.update_or_create(
                user=admin, role=role,
                defaults={"can_edit_rota": True, "can_edit_staff": True},
            )
        return admin

    def _create_staff(self, roles: dict) -> dict:
        from apps.accounts.models import UserRole

        staff = {}
        for key, first, last, short, role_key in [
            ("alice", "Alice", "Chen", "AC", "consultant"),
            ("bob", "Bob", "Martinez", "BM", "consultant"),
            ("carol", "Carol", "Johnson", "CJ", "registrar"),
            ("dan", "Dan", "Okafor", "DO", "registrar"),
        ]:
            user = self._create_user(f"{key}@example.org", first, last, short)
            UserRole.objects.update_or_create(
                user=user, role=roles[role_key], defaults={"can_work_shifts": True},
            )
            staff[key] = user
        return staff

    def _create_ward_login(self, roles: dict):
        from apps.accounts.models import UserRole

        ward = self._create_user("ward.a@example.org", "Ward", "A", "WA", is_generic_login=True)
        for role in roles.values():
            UserRole.objects.get_or_create(user=ward, role=role)
        return ward

    # ------------------------------------------------------------------
    def _create_rota(self, roles: dict, staff: dict, admin) -> dict:
        """Four weeks of shifts from next Monday, rotating through each role's staff."""
        from apps.scheduling.models import Shift

        today = date.today()
        start = today + timedelta(days=7 - today.weekday())
        members = {
            "consultant": [staff["alice"], staff["bob"]],
            "registrar": [staff["carol"], staff["dan"]],
        }

        shifts = {key: [] for key in roles}
        with transaction.atomic():
            for offset in range(28):
                day = start + timedelta(days=offset)
                for role_key, role in roles.items():
                    for index, (label, begin, end) in enumerate(SHIFT_PATTERNS):
                        owner = members[role_key][(offset + index) % 2]
                        shift, _ = Shift.objects.get_or_create(
                            role=role, date=day, label=label,
                            defaults={
                                "start_time": begin,
                                "end_time": end,
                                "assignee": owner,
                                "published": True,
                                "created_by": admin,
                            },
                        )
                        shifts[role_key].append(shift)

            open_shift, _ = Shift.objects.get_or_create(
                role=roles["consultant"], date=start + timedelta(days=3), label="Extra clinic",
                defaults={"start_time": time(13, 0), "end_time": time(17, 0), "published": True, "created_by": admin},
            )
        shifts["open"] = open_shift
        self.stdout.write(f"  + Rota from {start:%Y-%m-%d} ({sum(len(v) for k, v in shifts.items() if k != 'open')} shifts)")
        return shifts

    # ------------------------------------------------------------------
    def _create_requests(self, staff: dict, shifts: dict) -> None:
        from apps.marketplace.models import ShiftRequest
        from apps.marketplace.services import marketplace

        if ShiftRequest.objects.exists():
            self.stdout.write("  = Requests already present, skipping.")
            return

        Kind = ShiftRequest.Kind
        alice, bob, carol, dan = staff["alice"], staff["bob"], staff["carol"], staff["dan"]

        def owned(role_key, user):
            return [s for s in shifts[role_key] if s.assignee_id == user.pk]

        # Scenario 2: open giveaway
        marketplace.create(alice, Kind.GIVEAWAY, owned("consultant", alice)[0].pk, notes="Family wedding")

        # Scenario 3: claimed, awaiting approval
        pending = marketplace.create(alice, Kind.GIVEAWAY, owned("consultant", alice)[1].pk)
        marketplace.claim(bob, pending.pk)

        # Scenario 4: auto-approved in the registrar role
        done = marketplace.create(carol, Kind.GIVEAWAY, owned("registrar", carol)[0].pk)
        marketplace.claim(dan, done.pk)

        # Scenario 5: swap proposed to a named colleague
        marketplace.create(
            carol, Kind.SWAP, owned("registrar", carol)[1].pk,
            target_shift_id=owned("registrar", dan)[1].pk,
            target_staff_id=dan.pk,
            notes="Can we swap nights?",
        )

        # Scenario 6: open shift posted for pickup
        marketplace.create(bob, Kind.PICKUP, shifts["open"].pk)

        self.stdout.write(f"  + {ShiftRequest.objects.count()} marketplace requests")
