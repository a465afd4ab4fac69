import json
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text


def log_match_event(
    db,
    match_id: str,
    event_type: str,
    payload: dict[str, Any] | None = None,
    user_id: str | None = None,
) -> None:
    payload = payload or {}
    db.execute(
        text(
            """
            INSERT INTO match_event (id, match_id, user_id, event_type, payload, created_at)
            VALUES (:id, :match_id, :user_id, :event_type, :payload, :created_at)
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "match_id": match_id,
            "user_id": user_id,
            "event_type": event_type,
            "payload": json.dumps(payload),
            "created_at": datetime.now(timezone.utc).isoformat(),
        },
    )
