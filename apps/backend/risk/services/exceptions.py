from django.core.exceptions import ObjectDoesNotExist, ValidationError

__all__ = ["InvalidTransition", "RiskNotFound", "ValidationError"]


class InvalidTransition(ValidationError):
    """A lifecycle action was requested from a status that does not allow it."""

    def __init__(self, current: str, requested: str, message: str | None = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Invalid transition from {current} to {requested}.",
            code="invalid_transition",
            params={"current": current, "requested": requested},
        )


class RiskNotFound(ObjectDoesNotExist):
    def __init__(self, risk_id):
        self.risk_id = risk_id
        super().__init__(f"Risk {risk_id} does not exist.")
