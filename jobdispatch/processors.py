"""
Default job processors.

The actual statistics computation and export generation live outside this
service. These processors acknowledge the job and return run metadata so the
queue lifecycle works end to end; deployments register their own processors
through ``JobSystem``.
"""

import time
import logging
from datetime import datetime, timezone
from typing import Any, Dict

logger = logging.getLogger(__name__)


def calculate_stats(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Acknowledge a statistics request."""
    start = time.time()
    params = {k: v for k, v in payload.items() if k != "requestId"}
    logger.info(f"Calculating statistics for request {payload.get('requestId')}")
    return {
        "params": params,
        "meta": {
            "calculatedAt": datetime.now(timezone.utc).isoformat(),
            "processingTimeMs": int((time.time() - start) * 1000),
            "requestId": payload.get("requestId"),
        },
    }


def export_data(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Acknowledge a data export request."""
    params = {k: v for k, v in payload.items() if k != "requestId"}
    logger.info(f"Exporting data for request {payload.get('requestId')}")
    return {
        "params": params,
        "meta": {
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "requestId": payload.get("requestId"),
        },
    }
