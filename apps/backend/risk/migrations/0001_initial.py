import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

RATING_VALIDATORS = [
    django.core.validators.MinValueValidator(1),
    django.core.validators.MaxValueValidator(5),
]

LEVEL_CHOICES = [("LOW", "Low"), ("MEDIUM", "Medium"), ("HIGH", "High")]

TREATMENT_CHOICES = [
    ("RETAIN", "Retain"),
    ("MODIFY", "Modify"),
    ("SHARE", "Share"),
    ("AVOID", "Avoid"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("asset", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="InterestedParty",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, unique=True)),
                ("group", models.CharField(blank=True, max_length=128)),
                ("description", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "verbose_name_plural": "interested parties",
            },
        ),
        migrations.CreateModel(
            name="Control",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=64, unique=True)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="Risk",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("threat_description", models.TextField(blank=True)),
                ("date_added", models.DateTimeField(default=django.utils.timezone.now)),
                ("risk_category", models.CharField(blank=True, max_length=128)),
                (
                    "risk_nature",
                    models.CharField(
                        blank=True,
                        choices=[("STATIC", "Static"), ("INSTANCE", "Instance")],
                        max_length=16,
                    ),
                ),
                (
                    "department",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("BUSINESS_STRATEGY", "Business Strategy"),
                            ("FINANCE", "Finance"),
                            ("HR", "HR"),
                            ("OPERATIONS", "Operations"),
                            ("PRODUCT", "Product"),
                            ("MARKETING", "Marketing"),
                        ],
                        max_length=32,
                    ),
                ),
                ("confidentiality_score", models.PositiveSmallIntegerField(default=1, validators=RATING_VALIDATORS)),
                ("integrity_score", models.PositiveSmallIntegerField(default=1, validators=RATING_VALIDATORS)),
                ("availability_score", models.PositiveSmallIntegerField(default=1, validators=RATING_VALIDATORS)),
                ("likelihood", models.PositiveSmallIntegerField(default=1, validators=RATING_VALIDATORS)),
                ("calculated_score", models.PositiveIntegerField(default=3, editable=False)),
                (
                    "risk_level",
                    models.CharField(choices=LEVEL_CHOICES, default="LOW", editable=False, max_length=16),
                ),
                (
                    "initial_risk_treatment_category",
                    models.CharField(blank=True, choices=TREATMENT_CHOICES, max_length=16),
                ),
                (
                    "mitigated_confidentiality_score",
                    models.PositiveSmallIntegerField(blank=True, null=True, validators=RATING_VALIDATORS),
                ),
                (
                    "mitigated_integrity_score",
                    models.PositiveSmallIntegerField(blank=True, null=True, validators=RATING_VALIDATORS),
                ),
                (
                    "mitigated_availability_score",
                    models.PositiveSmallIntegerField(blank=True, null=True, validators=RATING_VALIDATORS),
                ),
                (
                    "mitigated_likelihood",
                    models.PositiveSmallIntegerField(blank=True, null=True, validators=RATING_VALIDATORS),
                ),
                ("mitigated_score", models.PositiveIntegerField(blank=True, editable=False, null=True)),
                (
                    "mitigated_risk_level",
                    models.CharField(blank=True, choices=LEVEL_CHOICES, editable=False, max_length=16, null=True),
                ),
                ("mitigation_implemented", models.BooleanField(default=False)),
                ("mitigation_description", models.TextField(blank=True)),
                (
                    "residual_risk_treatment_category",
                    models.CharField(blank=True, choices=TREATMENT_CHOICES, max_length=16),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Draft"),
                            ("PROPOSED", "Proposed"),
                            ("ACTIVE", "Active"),
                            ("REJECTED", "Rejected"),
                            ("MERGED", "Merged"),
                            ("ARCHIVED", "Archived"),
                        ],
                        default="DRAFT",
                        max_length=16,
                    ),
                ),
                ("wizard_data", models.JSONField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True)),
                ("archived", models.BooleanField(default=False)),
                ("archived_date", models.DateTimeField(blank=True, null=True)),
                ("expiry_date", models.DateField(blank=True, null=True)),
                ("last_review_date", models.DateField(blank=True, null=True)),
                ("next_review_date", models.DateField(blank=True, null=True)),
                ("review_cadence_days", models.PositiveIntegerField(blank=True, null=True)),
                ("annex_a_controls_raw", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="owned_risks",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "merged_into",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="merged_risks",
                        to="risk.risk",
                    ),
                ),
                (
                    "asset",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="risks",
                        to="asset.asset",
                    ),
                ),
                (
                    "asset_category",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="risks",
                        to="asset.assetcategory",
                    ),
                ),
                (
                    "interested_party",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="risks",
                        to="risk.interestedparty",
                    ),
                ),
                ("controls", models.ManyToManyField(blank=True, related_name="risks", to="risk.control")),
            ],
            options={
                "ordering": ["-calculated_score", "-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="risk_risk_status_idx"),
                    models.Index(fields=["department"], name="risk_risk_department_idx"),
                    models.Index(fields=["archived"], name="risk_risk_archived_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=~models.Q(status="REJECTED") | ~models.Q(rejection_reason=""),
                        name="ck_risk_rejected_has_reason",
                    ),
                    models.CheckConstraint(
                        condition=(models.Q(status="MERGED") & models.Q(merged_into__isnull=False))
                        | (~models.Q(status="MERGED") & models.Q(merged_into__isnull=True)),
                        name="ck_risk_merged_has_target",
                    ),
                    models.CheckConstraint(
                        condition=~models.Q(merged_into=models.F("id")),
                        name="ck_risk_not_merged_into_self",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(mitigated_score__isnull=True, mitigated_risk_level__isnull=True)
                        | models.Q(mitigated_score__isnull=False, mitigated_risk_level__isnull=False),
                        name="ck_risk_mitigation_all_or_nothing",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RiskScoringSnapshot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(choices=[("initial", "Initial"), ("mitigated", "Mitigated")], max_length=16),
                ),
                ("confidentiality_score", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("integrity_score", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("availability_score", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("likelihood", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("score", models.PositiveIntegerField(blank=True, null=True)),
                ("level", models.CharField(blank=True, choices=LEVEL_CHOICES, max_length=16)),
                ("calculated_by", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "risk",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="scoring_history",
                        to="risk.risk",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
