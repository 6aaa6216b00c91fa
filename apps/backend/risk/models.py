from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from asset.models import Asset, AssetCategory

from .services.scoring import LEVEL_CHOICES, LEVEL_LOW, ScoreResult, compute_optional_score, compute_score, clamp_score

RATING_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class InterestedParty(models.Model):
    name = models.CharField(max_length=255, unique=True)
    group = models.CharField(max_length=128, blank=True)
    description = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "interested parties"

    def __str__(self) -> str:
        return self.name


class Control(models.Model):
    code = models.CharField(max_length=64, unique=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]

    def __str__(self) -> str:
        return f"{self.code} - {self.title}"


class Risk(models.Model):
    STATUS_DRAFT = "DRAFT"
    STATUS_PROPOSED = "PROPOSED"
    STATUS_ACTIVE = "ACTIVE"
    STATUS_REJECTED = "REJECTED"
    STATUS_MERGED = "MERGED"
    STATUS_ARCHIVED = "ARCHIVED"
    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PROPOSED, "Proposed"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_MERGED, "Merged"),
        (STATUS_ARCHIVED, "Archived"),
    ]

    NATURE_STATIC = "STATIC"
    NATURE_INSTANCE = "INSTANCE"
    NATURE_CHOICES = [
        (NATURE_STATIC, "Static"),
        (NATURE_INSTANCE, "Instance"),
    ]

    TREATMENT_RETAIN = "RETAIN"
    TREATMENT_MODIFY = "MODIFY"
    TREATMENT_SHARE = "SHARE"
    TREATMENT_AVOID = "AVOID"
    TREATMENT_CHOICES = [
        (TREATMENT_RETAIN, "Retain"),
        (TREATMENT_MODIFY, "Modify"),
        (TREATMENT_SHARE, "Share"),
        (TREATMENT_AVOID, "Avoid"),
    ]

    DEPARTMENT_CHOICES = [
        ("BUSINESS_STRATEGY", "Business Strategy"),
        ("FINANCE", "Finance"),
        ("HR", "HR"),
        ("OPERATIONS", "Operations"),
        ("PRODUCT", "Product"),
        ("MARKETING", "Marketing"),
    ]

    INITIAL_SCORE_FIELDS = ("confidentiality_score", "integrity_score", "availability_score", "likelihood")
    MITIGATION_FIELDS = (
        "mitigated_confidentiality_score",
        "mitigated_integrity_score",
        "mitigated_availability_score",
        "mitigated_likelihood",
    )
    DERIVED_FIELDS = ("calculated_score", "risk_level", "mitigated_score", "mitigated_risk_level")

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    threat_description = models.TextField(blank=True)
    date_added = models.DateTimeField(default=timezone.now)
    risk_category = models.CharField(max_length=128, blank=True)
    risk_nature = models.CharField(max_length=16, choices=NATURE_CHOICES, blank=True)
    department = models.CharField(max_length=32, choices=DEPARTMENT_CHOICES, blank=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="owned_risks",
    )

    confidentiality_score = models.PositiveSmallIntegerField(default=1, validators=RATING_VALIDATORS)
    integrity_score = models.PositiveSmallIntegerField(default=1, validators=RATING_VALIDATORS)
    availability_score = models.PositiveSmallIntegerField(default=1, validators=RATING_VALIDATORS)
    likelihood = models.PositiveSmallIntegerField(default=1, validators=RATING_VALIDATORS)
    calculated_score = models.PositiveIntegerField(default=3, editable=False)
    risk_level = models.CharField(max_length=16, choices=LEVEL_CHOICES, default=LEVEL_LOW, editable=False)
    initial_risk_treatment_category = models.CharField(max_length=16, choices=TREATMENT_CHOICES, blank=True)

    mitigated_confidentiality_score = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    mitigated_integrity_score = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    mitigated_availability_score = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    mitigated_likelihood = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    mitigated_score = models.PositiveIntegerField(null=True, blank=True, editable=False)
    mitigated_risk_level = models.CharField(max_length=16, choices=LEVEL_CHOICES, null=True, blank=True, editable=False)  # noqa: DJ001
    mitigation_implemented = models.BooleanField(default=False)
    mitigation_description = models.TextField(blank=True)
    residual_risk_treatment_category = models.CharField(max_length=16, choices=TREATMENT_CHOICES, blank=True)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    wizard_data = models.JSONField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    merged_into = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="merged_risks",
    )
    archived = models.BooleanField(default=False)
    archived_date = models.DateTimeField(null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    last_review_date = models.DateField(null=True, blank=True)
    next_review_date = models.DateField(null=True, blank=True)
    review_cadence_days = models.PositiveIntegerField(null=True, blank=True)

    asset = models.ForeignKey(Asset, on_delete=models.SET_NULL, null=True, blank=True, related_name="risks")
    asset_category = models.ForeignKey(AssetCategory, on_delete=models.SET_NULL, null=True, blank=True, related_name="risks")
    interested_party = models.ForeignKey(
        InterestedParty,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="risks",
    )
    controls = models.ManyToManyField(Control, blank=True, related_name="risks")
    annex_a_controls_raw = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-calculated_score", "-created_at"]
        indexes = [
            models.Index(fields=["status"], name="risk_risk_status_idx"),
            models.Index(fields=["department"], name="risk_risk_department_idx"),
            models.Index(fields=["archived"], name="risk_risk_archived_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(status="REJECTED") | ~Q(rejection_reason=""),
                name="ck_risk_rejected_has_reason",
            ),
            models.CheckConstraint(
                condition=(Q(status="MERGED") & Q(merged_into__isnull=False))
                | (~Q(status="MERGED") & Q(merged_into__isnull=True)),
                name="ck_risk_merged_has_target",
            ),
            models.CheckConstraint(
                condition=~Q(merged_into=F("id")),
                name="ck_risk_not_merged_into_self",
            ),
            models.CheckConstraint(
                condition=Q(mitigated_score__isnull=True, mitigated_risk_level__isnull=True)
                | Q(mitigated_score__isnull=False, mitigated_risk_level__isnull=False),
                name="ck_risk_mitigation_all_or_nothing",
            ),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def mitigation(self) -> ScoreResult | None:
        if self.mitigated_score is None:
            return None
        return ScoreResult(score=self.mitigated_score, level=self.mitigated_risk_level)

    def refresh_derived_scores(self) -> None:
        """Clamp the rating inputs and recompute both derived score pairs."""
        for field_name in self.INITIAL_SCORE_FIELDS:
            setattr(self, field_name, clamp_score(getattr(self, field_name)))
        for field_name in self.MITIGATION_FIELDS:
            value = getattr(self, field_name)
            if value is not None:
                setattr(self, field_name, clamp_score(value))

        initial = compute_score(self.confidentiality_score, self.integrity_score, self.availability_score, self.likelihood)
        self.calculated_score = initial.score
        self.risk_level = initial.level

        mitigated = compute_optional_score(*(getattr(self, field_name) for field_name in self.MITIGATION_FIELDS))
        self.mitigated_score = mitigated.score if mitigated else None
        self.mitigated_risk_level = mitigated.level if mitigated else None

    @classmethod
    def dependent_fields(cls, update_fields) -> set[str]:
        """Derived columns that must be written alongside ``update_fields``."""
        fields = set(update_fields)
        if fields & set(cls.INITIAL_SCORE_FIELDS):
            fields |= {"calculated_score", "risk_level"}
        if fields & set(cls.MITIGATION_FIELDS):
            fields |= {"mitigated_score", "mitigated_risk_level"}
        return fields | {"updated_at"}

    def save(self, *args, **kwargs):
        self.refresh_derived_scores()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = self.dependent_fields(update_fields)
        super().save(*args, **kwargs)


class RiskScoringSnapshot(models.Model):
    KIND_INITIAL = "initial"
    KIND_MITIGATED = "mitigated"
    KIND_CHOICES = [
        (KIND_INITIAL, "Initial"),
        (KIND_MITIGATED, "Mitigated"),
    ]

    risk = models.ForeignKey(Risk, on_delete=models.CASCADE, related_name="scoring_history")
    kind = models.CharField(max_length=16, choices=KIND_CHOICES)
    confidentiality_score = models.PositiveSmallIntegerField(null=True, blank=True)
    integrity_score = models.PositiveSmallIntegerField(null=True, blank=True)
    availability_score = models.PositiveSmallIntegerField(null=True, blank=True)
    likelihood = models.PositiveSmallIntegerField(null=True, blank=True)
    score = models.PositiveIntegerField(null=True, blank=True)
    level = models.CharField(max_length=16, choices=LEVEL_CHOICES, blank=True)
    calculated_by = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.risk_id}:{self.kind}:{self.score}"
