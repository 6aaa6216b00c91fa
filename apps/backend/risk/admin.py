from django.contrib import admin

from .models import Control, InterestedParty, Risk, RiskScoringSnapshot


class RiskScoringSnapshotInline(admin.TabularInline):
    model = RiskScoringSnapshot
    extra = 0
    can_delete = False
    readonly_fields = (
        "kind",
        "confidentiality_score",
        "integrity_score",
        "availability_score",
        "likelihood",
        "score",
        "level",
        "calculated_by",
        "created_at",
    )


@admin.register(Risk)
class RiskAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "title",
        "status",
        "department",
        "calculated_score",
        "risk_level",
        "mitigated_score",
        "mitigated_risk_level",
        "archived",
        "created_at",
    )
    list_filter = ("status", "risk_level", "department", "risk_nature", "archived")
    search_fields = ("title", "description", "threat_description")
    # Lifecycle and derived fields only change through the review workflows.
    readonly_fields = (
        "status",
        "rejection_reason",
        "merged_into",
        "calculated_score",
        "risk_level",
        "mitigated_score",
        "mitigated_risk_level",
        "created_at",
        "updated_at",
    )
    filter_horizontal = ("controls",)
    inlines = [RiskScoringSnapshotInline]


@admin.register(Control)
class ControlAdmin(admin.ModelAdmin):
    list_display = ("code", "title", "is_active")
    list_filter = ("is_active",)
    search_fields = ("code", "title")


@admin.register(InterestedParty)
class InterestedPartyAdmin(admin.ModelAdmin):
    list_display = ("name", "group")
    search_fields = ("name", "group")
