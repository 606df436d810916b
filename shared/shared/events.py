import json
import uuid
from datetime import datetime, timezone

EVENT_SCHEMA_VERSION = "1.0"


def build_event(event_type: str, slug: str, data: dict, source: str = "intake-service") -> dict:
    return {
        "event_version": EVENT_SCHEMA_VERSION,
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "source": source,
        "tenant": {"slug": slug},
        "data": data,
    }


def canonical_json(payload: dict) -> str:
    """Stable encoding: sorted keys, no insignificant whitespace, UTF-8 kept as-is."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
