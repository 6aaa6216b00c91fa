from django.urls import include, path
from rest_framework.routers import DefaultRouter

from risk.views import ControlViewSet, ReviewQueueView, RiskScoringSnapshotViewSet, RiskViewSet

router = DefaultRouter()
router.register(r"risks", RiskViewSet, basename="risk")
router.register(r"controls", ControlViewSet, basename="control")
router.register(r"risk-scoring-snapshots", RiskScoringSnapshotViewSet, basename="risk-scoring-snapshot")

urlpatterns = [
    path("", include(router.urls)),
    path("review-queue/", ReviewQueueView.as_view(), name="review-queue"),
]
