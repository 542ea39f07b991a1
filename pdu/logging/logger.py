from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

logger = logging.getLogger("pdu.accounts")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"pdu.{name}")


def log_account_event(
    user_id: int | None,
    event: str,
    outcome: str,
    reason: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> None:
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "user_id": user_id,
        "event": event,
        "outcome": outcome,
        "reason": reason,
        "metadata": dict(metadata) if metadata else {},
    }
    logger.info(json.dumps(entry, default=str))
