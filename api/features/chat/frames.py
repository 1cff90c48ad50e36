"""Wire framing for the chat event stream.

Each frame is ``data: <json>\\n\\n`` where the JSON payload is one of
``{"content": str}``, ``{"done": true, "timestamp": str}`` or
``{"error": str, "details"?: str}``.
"""
import json
from datetime import datetime
from typing import Any, Dict, Optional

FRAME_PREFIX = "data: "
FRAME_DELIMITER = "\n\n"
MEDIA_TYPE = "text/event-stream"


def encode_frame(payload: Dict[str, Any]) -> str:
    # Non-ASCII stays raw UTF-8 on the wire
    return f"{FRAME_PREFIX}{json.dumps(payload, ensure_ascii=False)}{FRAME_DELIMITER}"


def content_frame(delta: str) -> str:
    return encode_frame({"content": delta})


def done_frame(timestamp: datetime) -> str:
    return encode_frame({"done": True, "timestamp": timestamp.isoformat()})


def error_frame(error: str, details: Optional[str] = None) -> str:
    payload: Dict[str, Any] = {"error": error}
    if details:
        payload["details"] = details
    return encode_frame(payload)
