import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("notification_type", models.CharField(choices=[
                    ("swap_proposed", "Swap Proposed to You"),
                    ("swap_accepted", "Swap Accepted by Colleague"),
                    ("swap_declined", "Swap Declined by Colleague"),
                    ("request_claimed", "Your Shift Was Claimed"),
                    ("request_approved", "Request Approved"),
                    ("request_rejected", "Request Rejected"),
                    ("request_cancelled", "Request Cancelled"),
                    ("shift_reassigned", "Shift Ownership Changed"),
                    ("approval_needed", "Request Awaiting Your Approval"),
                ], max_length=30)),
                ("title", models.CharField(max_length=200)),
                ("body", models.TextField()),
                ("data", models.JSONField(blank=True, default=dict)),
                ("is_read", models.BooleanField(default=False)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Notification",
                "verbose_name_plural": "Notifications",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["recipient", "is_read"], name="notification_unread_idx"),
                    models.Index(fields=["recipient", "-created_at"], name="notification_recent_idx"),
                ],
            },
        ),
    ]
