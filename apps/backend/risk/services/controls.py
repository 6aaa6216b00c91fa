from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.db import transaction

from risk.models import Control, Risk

logger = logging.getLogger(__name__)


def parse_control_codes(raw: Optional[str]) -> list[str]:
    """Split an Annex A list such as ``"A.8.3, A.5.9"`` into its codes."""
    if not raw:
        return []
    return [code.strip() for code in raw.split(",") if code.strip()]


@transaction.atomic
def link_controls(risk: Risk, codes: Iterable[str]) -> list[Control]:
    """Replace the risk's linked controls with the given codes.

    Unknown codes get a placeholder control so the link is never dropped.
    """
    controls = []
    seen = set()
    for code in codes:
        if code in seen:
            continue
        seen.add(code)
        control, created = Control.objects.get_or_create(
            code=code,
            defaults={"title": f"Control {code}", "description": f"Annex A Control {code}"},
        )
        if created:
            logger.info("Created placeholder control %s", code)
        controls.append(control)

    risk.controls.set(controls)
    return controls
