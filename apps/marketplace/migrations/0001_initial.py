import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("scheduling", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ShiftRequest",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("kind", models.CharField(choices=[("GIVEAWAY", "Giveaway"), ("PICKUP", "Pickup"), ("SWAP", "Swap")], max_length=10)),
                ("status", models.CharField(choices=[
                    ("OPEN", "Open"),
                    ("PROPOSED", "Proposed"),
                    ("PEER_ACCEPTED", "Accepted by colleague"),
                    ("PEER_REJECTED", "Declined by colleague"),
                    ("PENDING_APPROVAL", "Awaiting approval"),
                    ("APPROVED", "Approved"),
                    ("REJECTED", "Rejected"),
                    ("CANCELLED", "Cancelled"),
                ], max_length=20)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                ("admin_note", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("candidate", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="shift_requests_claimed", to=settings.AUTH_USER_MODEL)),
                ("requester", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="shift_requests_made", to=settings.AUTH_USER_MODEL)),
                ("resolved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="shift_requests_resolved", to=settings.AUTH_USER_MODEL)),
                ("source_shift", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="source_requests", to="scheduling.shift")),
                ("target_shift", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="target_requests", to="scheduling.shift")),
                ("target_staff", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="shift_requests_received", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Shift Request",
                "verbose_name_plural": "Shift Requests",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="shiftrequest_status_idx"),
                    models.Index(fields=["requester", "status"], name="shiftrequest_requester_idx"),
                    models.Index(fields=["source_shift", "status"], name="shiftrequest_source_idx"),
                    models.Index(fields=["target_shift", "status"], name="shiftrequest_target_idx"),
                ],
            },
        ),
    ]
