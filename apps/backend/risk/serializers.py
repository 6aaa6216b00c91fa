from rest_framework import serializers

from asset.serializers import AssetSummarySerializer

from .models import Control, Risk, RiskScoringSnapshot
from .services.mitigation import has_policy_nonconformance
from .services.scoring import SCORE_MAX, SCORE_MIN, ScoreInputs


class ControlSerializer(serializers.ModelSerializer):
    class Meta:
        model = Control
        fields = ["id", "code", "title", "description", "is_active", "created_at", "updated_at"]


class ControlSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Control
        fields = ["id", "code", "title"]


class RiskScoringSnapshotSerializer(serializers.ModelSerializer):
    class Meta:
        model = RiskScoringSnapshot
        fields = [
            "id",
            "risk",
            "kind",
            "confidentiality_score",
            "integrity_score",
            "availability_score",
            "likelihood",
            "score",
            "level",
            "calculated_by",
            "created_at",
        ]


class RiskSerializer(serializers.ModelSerializer):
    owner_username = serializers.CharField(source="owner.username", read_only=True)
    asset_detail = AssetSummarySerializer(source="asset", read_only=True)
    controls = ControlSummarySerializer(many=True, read_only=True)
    policy_nonconformance = serializers.SerializerMethodField()

    class Meta:
        model = Risk
        fields = [
            "id",
            "title",
            "description",
            "threat_description",
            "date_added",
            "risk_category",
            "risk_nature",
            "department",
            "owner",
            "owner_username",
            "status",
            "wizard_data",
            "rejection_reason",
            "merged_into",
            "archived",
            "archived_date",
            "expiry_date",
            "last_review_date",
            "next_review_date",
            "review_cadence_days",
            "asset",
            "asset_detail",
            "asset_category",
            "interested_party",
            "confidentiality_score",
            "integrity_score",
            "availability_score",
            "likelihood",
            "calculated_score",
            "risk_level",
            "initial_risk_treatment_category",
            "mitigated_confidentiality_score",
            "mitigated_integrity_score",
            "mitigated_availability_score",
            "mitigated_likelihood",
            "mitigated_score",
            "mitigated_risk_level",
            "mitigation_implemented",
            "mitigation_description",
            "residual_risk_treatment_category",
            "annex_a_controls_raw",
            "controls",
            "policy_nonconformance",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "rejection_reason",
            "merged_into",
            "archived",
            "archived_date",
            "calculated_score",
            "risk_level",
            "mitigated_confidentiality_score",
            "mitigated_integrity_score",
            "mitigated_availability_score",
            "mitigated_likelihood",
            "mitigated_score",
            "mitigated_risk_level",
            "created_at",
            "updated_at",
        ]

    CREATABLE_STATUSES = (Risk.STATUS_DRAFT, Risk.STATUS_PROPOSED)

    def get_policy_nonconformance(self, obj) -> bool:
        return has_policy_nonconformance(obj)

    def validate_status(self, value):
        if self.instance is not None:
            if value != self.instance.status:
                raise serializers.ValidationError("Status changes go through the approve, reject and merge actions.")
            return value
        if value not in self.CREATABLE_STATUSES:
            raise serializers.ValidationError("New risks start as DRAFT or PROPOSED.")
        return value


class ScoreInputsSerializer(serializers.Serializer):
    confidentiality_score = serializers.IntegerField(min_value=SCORE_MIN, max_value=SCORE_MAX)
    integrity_score = serializers.IntegerField(min_value=SCORE_MIN, max_value=SCORE_MAX)
    availability_score = serializers.IntegerField(min_value=SCORE_MIN, max_value=SCORE_MAX)
    likelihood = serializers.IntegerField(min_value=SCORE_MIN, max_value=SCORE_MAX)

    def to_score_inputs(self) -> ScoreInputs:
        data = self.validated_data
        return ScoreInputs(
            confidentiality=data["confidentiality_score"],
            integrity=data["integrity_score"],
            availability=data["availability_score"],
            likelihood=data["likelihood"],
        )

    @staticmethod
    def from_score_inputs(inputs: ScoreInputs) -> dict:
        return {
            "confidentiality_score": inputs.confidentiality,
            "integrity_score": inputs.integrity,
            "availability_score": inputs.availability,
            "likelihood": inputs.likelihood,
        }


class MitigationSerializer(ScoreInputsSerializer):
    mitigation_description = serializers.CharField(required=False, allow_blank=True)


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True, trim_whitespace=False)


class MergeSerializer(serializers.Serializer):
    target_risk_id = serializers.IntegerField()


class ControlLinkSerializer(serializers.Serializer):
    codes = serializers.ListField(child=serializers.CharField(), required=False)
    annex_a_controls_raw = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if "codes" not in attrs and "annex_a_controls_raw" not in attrs:
            raise serializers.ValidationError("Provide codes or annex_a_controls_raw.")
        return attrs


class ReviewInboxSerializer(serializers.Serializer):
    proposed = RiskSerializer(many=True)
    merge_candidates = RiskSerializer(many=True)
    truncated = serializers.BooleanField()
