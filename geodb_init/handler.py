"""AWS Lambda entry point.

Invoked by the deployment hook with no meaningful payload; everything comes
from the environment and Secrets Manager. Always returns
`{"statusCode": 200 | 500, "body": "..."}` and never raises.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from geodb_init.log import ensure_logging
from geodb_init.models.provision import ProvisionResult
from geodb_init.services.dependencies import get_provision_service
from geodb_init.services.provision_service import ProvisionServiceError


logger = logging.getLogger(__name__)

# Leave room to log and return before Lambda kills the invocation.
_TIMEOUT_MARGIN_SECONDS = 1.0


def _remaining_budget_seconds(context: Any) -> Optional[float]:
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if get_remaining is None:
        return None
    remaining = get_remaining() / 1000.0 - _TIMEOUT_MARGIN_SECONDS
    return max(remaining, 0.1)


def handler(event: Any, context: Any) -> dict[str, Any]:
    ensure_logging()

    try:
        svc = get_provision_service()
    except ProvisionServiceError:
        return ProvisionResult.failed().to_lambda_response()

    budget = _remaining_budget_seconds(context)
    if budget is not None:
        budget = min(budget, svc.timeout_seconds)

    result = asyncio.run(svc.run(timeout_seconds=budget))
    logger.info("Provisioning finished: status=%d", result.status)
    return result.to_lambda_response()
