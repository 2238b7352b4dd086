import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Bar",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "owner_id",
                    models.CharField(
                        db_index=True,
                        help_text="Identity-provider id of the owning user",
                        max_length=255,
                    ),
                ),
                (
                    "name",
                    models.CharField(help_text="Display name of the bar", max_length=200),
                ),
                (
                    "connect_account_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe connected account ID (acct_xxx)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "connect_account_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("restricted", "Restricted"),
                            ("active", "Active"),
                        ],
                        default="pending",
                        help_text="Cached connected account status",
                        max_length=20,
                    ),
                ),
                (
                    "payment_setup_complete",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the bar can receive split payments",
                    ),
                ),
            ],
            options={
                "verbose_name": "Bar",
                "verbose_name_plural": "Bars",
                "ordering": ["-created_at"],
            },
        ),
    ]
