from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import decorators, mixins, response, status, views, viewsets
from rest_framework.permissions import IsAuthenticated

from core.audit import create_audit_event

from .models import Control, Risk, RiskScoringSnapshot
from .serializers import (
    ControlLinkSerializer,
    ControlSerializer,
    MergeSerializer,
    MitigationSerializer,
    RejectSerializer,
    ReviewInboxSerializer,
    RiskScoringSnapshotSerializer,
    RiskSerializer,
    ScoreInputsSerializer,
)
from .services.approval import ApprovalWorkflow, suggest_approval_scores
from .services.controls import link_controls, parse_control_codes
from .services.exceptions import InvalidTransition, RiskNotFound
from .services.merge import MergeWorkflow
from .services.mitigation import MitigationService
from .services.retirement import archive_risk
from .services.review_queue import ReviewQueueAggregator


def _actor(request) -> str:
    return request.user.username if request.user.is_authenticated else "api"


def _error_payload(exc: DjangoValidationError) -> dict:
    if hasattr(exc, "error_dict"):
        return {"errors": exc.message_dict}
    return {"errors": exc.messages}


def lifecycle_error_response(exc: Exception) -> response.Response:
    if isinstance(exc, InvalidTransition):
        return response.Response(
            {"error": exc.messages[0], "current": exc.current, "requested": exc.requested},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, RiskNotFound):
        return response.Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    return response.Response(_error_payload(exc), status=status.HTTP_400_BAD_REQUEST)


class ControlViewSet(viewsets.ModelViewSet):
    queryset = Control.objects.order_by("code")
    serializer_class = ControlSerializer
    permission_classes = [IsAuthenticated]
    search_fields = ("code", "title")
    ordering_fields = ("code", "title", "created_at", "updated_at")


class RiskScoringSnapshotViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = RiskScoringSnapshot.objects.select_related("risk").order_by("-created_at", "-id")
    serializer_class = RiskScoringSnapshotSerializer
    permission_classes = [IsAuthenticated]
    ordering_fields = ("created_at",)

    def get_queryset(self):
        qs = super().get_queryset()
        risk_id = self.request.query_params.get("risk")
        if risk_id:
            qs = qs.filter(risk_id=risk_id)
        return qs


# Risks are retired through the archive action, never deleted.
class RiskViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = RiskSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ["get", "post", "put", "patch", "delete", "head", "options"]
    search_fields = ("title", "description", "threat_description")
    ordering_fields = ("calculated_score", "mitigated_score", "title", "created_at", "date_added")

    def get_queryset(self):
        queryset = Risk.objects.select_related("owner", "asset", "asset__category", "merged_into").prefetch_related(
            "controls"
        )

        status_value = self.request.query_params.get("status")
        risk_level = self.request.query_params.get("risk_level")
        department = self.request.query_params.get("department")
        archived = self.request.query_params.get("archived")

        if status_value:
            queryset = queryset.filter(status=status_value)
        if risk_level:
            queryset = queryset.filter(risk_level=risk_level)
        if department:
            queryset = queryset.filter(department=department)
        if archived is not None:
            queryset = queryset.filter(archived=archived.lower() == "true")

        return queryset.order_by("-calculated_score", "-created_at")

    def perform_create(self, serializer):
        risk = serializer.save()
        if risk.annex_a_controls_raw:
            link_controls(risk, parse_control_codes(risk.annex_a_controls_raw))
        create_audit_event(
            action="risk.create",
            entity_type="risk",
            entity_id=risk.id,
            to_status=risk.status,
            request=self.request,
        )

    def perform_update(self, serializer):
        risk = serializer.save()
        if "annex_a_controls_raw" in serializer.validated_data:
            link_controls(risk, parse_control_codes(risk.annex_a_controls_raw))
        create_audit_event(
            action="risk.update",
            entity_type="risk",
            entity_id=risk.id,
            request=self.request,
        )

    def _transition_response(self, request, risk, *, action, from_status, metadata=None):
        create_audit_event(
            action=action,
            entity_type="risk",
            entity_id=risk.id,
            from_status=from_status,
            to_status=risk.status,
            metadata=metadata,
            request=request,
        )
        return response.Response(self.get_serializer(risk).data, status=status.HTTP_200_OK)

    @decorators.action(detail=True, methods=["get"], url_path="approval-defaults")
    def approval_defaults(self, request, pk=None):
        risk = self.get_object()
        return response.Response(ScoreInputsSerializer.from_score_inputs(suggest_approval_scores(risk)))

    @decorators.action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        risk = self.get_object()
        revised = None
        if request.data:
            scores = ScoreInputsSerializer(data=request.data)
            scores.is_valid(raise_exception=True)
            revised = scores.to_score_inputs()

        from_status = risk.status
        try:
            risk = ApprovalWorkflow().approve(risk, revised, actor=_actor(request))
        except DjangoValidationError as exc:
            return lifecycle_error_response(exc)
        return self._transition_response(
            request,
            risk,
            action="risk.approve",
            from_status=from_status,
            metadata={"calculated_score": risk.calculated_score, "risk_level": risk.risk_level},
        )

    @decorators.action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        risk = self.get_object()
        payload = RejectSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        from_status = risk.status
        try:
            risk = ApprovalWorkflow().reject(risk, payload.validated_data["reason"], actor=_actor(request))
        except DjangoValidationError as exc:
            return lifecycle_error_response(exc)
        return self._transition_response(request, risk, action="risk.reject", from_status=from_status)

    @decorators.action(detail=True, methods=["post"])
    def merge(self, request, pk=None):
        risk = self.get_object()
        payload = MergeSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        target_risk_id = payload.validated_data["target_risk_id"]

        from_status = risk.status
        try:
            risk = MergeWorkflow().merge(risk, target_risk_id, actor=_actor(request))
        except (DjangoValidationError, RiskNotFound) as exc:
            return lifecycle_error_response(exc)
        return self._transition_response(
            request,
            risk,
            action="risk.merge",
            from_status=from_status,
            metadata={"merged_into": target_risk_id},
        )

    @decorators.action(detail=True, methods=["put", "delete"])
    def mitigation(self, request, pk=None):
        risk = self.get_object()
        service = MitigationService()

        if request.method == "DELETE":
            risk = service.clear_mitigation(risk, actor=_actor(request))
            action = "risk.mitigation.clear"
        else:
            payload = MitigationSerializer(data=request.data)
            payload.is_valid(raise_exception=True)
            risk = service.set_mitigation(
                risk,
                payload.to_score_inputs(),
                description=payload.validated_data.get("mitigation_description"),
                actor=_actor(request),
            )
            action = "risk.mitigation.set"

        create_audit_event(
            action=action,
            entity_type="risk",
            entity_id=risk.id,
            metadata={"mitigated_score": risk.mitigated_score, "mitigated_risk_level": risk.mitigated_risk_level},
            request=request,
        )
        return response.Response(self.get_serializer(risk).data, status=status.HTTP_200_OK)

    @decorators.action(detail=True, methods=["post"])
    def archive(self, request, pk=None):
        risk = self.get_object()
        try:
            risk = archive_risk(risk, actor=_actor(request))
        except DjangoValidationError as exc:
            return lifecycle_error_response(exc)
        create_audit_event(action="risk.archive", entity_type="risk", entity_id=risk.id, request=request)
        return response.Response(self.get_serializer(risk).data, status=status.HTTP_200_OK)

    @decorators.action(detail=True, methods=["post"])
    def controls(self, request, pk=None):
        risk = self.get_object()
        payload = ControlLinkSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        if "codes" in payload.validated_data:
            codes = payload.validated_data["codes"]
        else:
            codes = parse_control_codes(payload.validated_data["annex_a_controls_raw"])
        controls = link_controls(risk, codes)

        create_audit_event(
            action="risk.controls.update",
            entity_type="risk",
            entity_id=risk.id,
            metadata={"control_codes": [control.code for control in controls]},
            request=request,
        )
        return response.Response(self.get_serializer(risk).data, status=status.HTTP_200_OK)


class ReviewQueueView(views.APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        inbox = ReviewQueueAggregator().build_inbox()
        return response.Response(ReviewInboxSerializer(inbox).data)
