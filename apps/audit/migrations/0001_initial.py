import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("contenttypes", "0002_remove_content_type_name"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(db_index=True, help_text="Dot-separated action identifier, e.g., 'shift_request.approved'", max_length=100)),
                ("object_id", models.CharField(blank=True, max_length=64)),
                ("shift_date", models.DateField(blank=True, null=True)),
                ("before", models.JSONField(blank=True, default=dict, help_text="Serialized state of the object before the change. Empty for creations.")),
                ("after", models.JSONField(blank=True, default=dict, help_text="Serialized state of the object after the change.")),
                ("note", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("actor", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="audit_actions", to=settings.AUTH_USER_MODEL)),
                ("content_type", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, to="contenttypes.contenttype")),
                ("role", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="audit_entries", to="accounts.role")),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["content_type", "object_id"], name="audit_object_idx"),
                    models.Index(fields=["actor", "-created_at"], name="audit_actor_idx"),
                    models.Index(fields=["role", "shift_date"], name="audit_role_date_idx"),
                ],
            },
        ),
    ]
