import uuid

import django.db.models.expressions
from django.db import migrations, models

import tickets.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="EventAggregate",
            fields=[
                ("event_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("capacity", models.PositiveIntegerField()),
                ("sold_count", models.PositiveIntegerField(default=0)),
                ("checked_in_count", models.PositiveIntegerField(default=0)),
                ("revenue", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("ticket_types", models.JSONField(default=tickets.models.default_ticket_types)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(sold_count__lte=django.db.models.expressions.F("capacity")),
                        name="aggregate_sold_within_capacity",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(checked_in_count__lte=django.db.models.expressions.F("sold_count")),
                        name="aggregate_checked_in_within_sold",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(revenue__gte=0),
                        name="aggregate_revenue_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("event_id", models.CharField(max_length=64)),
                ("ticket_code", models.CharField(max_length=64, unique=True)),
                ("holder_id", models.CharField(blank=True, max_length=64, null=True)),
                ("ticket_type", models.CharField(max_length=50)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("valid", "Valid"),
                            ("used", "Used"),
                            ("cancelled", "Cancelled"),
                            ("refunded", "Refunded"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("purchased_at", models.DateTimeField()),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField()),
            ],
            options={
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["event_id", "id"], name="tickets_tic_event_i_3c1f0a_idx"),
                    models.Index(fields=["event_id", "state"], name="tickets_tic_event_i_8d2b4e_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CheckInAttempt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ticket_code", models.CharField(max_length=255)),
                ("event_id", models.CharField(max_length=64)),
                (
                    "outcome",
                    models.CharField(
                        choices=[
                            ("success", "Success"),
                            ("already_used", "Already Used"),
                            ("invalid", "Invalid"),
                            ("wrong_event", "Wrong Event"),
                        ],
                        max_length=16,
                    ),
                ),
                ("message", models.CharField(max_length=255)),
                ("operator_id", models.CharField(blank=True, max_length=64, null=True)),
                ("attempted_at", models.DateTimeField()),
            ],
            options={
                "ordering": ["-attempted_at"],
                "indexes": [
                    models.Index(fields=["event_id", "-attempted_at"], name="tickets_che_event_i_5a7e91_idx"),
                ],
            },
        ),
    ]
