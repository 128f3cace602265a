"""
Action result payloads for ThinkGate.

Results coming back from the external action executor are either
plain text or a structured record. Both are modelled as a pydantic
discriminated union on ``kind`` so heuristics can keep matching on
text while the type stays checkable.
"""

import json
import logging
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class TextPayload(BaseModel):
    """Plain-text action output (file contents, search hits, listings)."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str = ""


class RecordPayload(BaseModel):
    """Structured action output."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["record"] = "record"
    data: Dict[str, Any] = Field(default_factory=dict)


Payload = Annotated[Union[TextPayload, RecordPayload], Field(discriminator="kind")]

_payload_adapter: TypeAdapter = TypeAdapter(Payload)


def to_payload(raw: Any) -> Union[TextPayload, RecordPayload]:
    """
    Coerce an executor result into a payload.

    Strings become text, mappings become records (or are parsed as an
    already-tagged payload when they carry a ``kind`` key), sequences
    are wrapped under ``items``. ``None`` is an empty text result.
    """
    if isinstance(raw, (TextPayload, RecordPayload)):
        return raw
    if raw is None:
        return TextPayload()
    if isinstance(raw, str):
        return TextPayload(text=raw)
    if isinstance(raw, dict):
        if raw.get("kind") in ("text", "record"):
            try:
                return _payload_adapter.validate_python(raw)
            except ValidationError as e:
                logger.debug(f"[EVIDENCE] Tagged payload rejected, keeping it as a record: {e.error_count()} error(s)")
        return RecordPayload(data=dict(raw))
    if isinstance(raw, (list, tuple)):
        return RecordPayload(data={"items": list(raw)})
    return TextPayload(text=str(raw))


def payload_text(payload: Union[TextPayload, RecordPayload]) -> str:
    """Flatten a payload to text (records are JSON-encoded)."""
    if isinstance(payload, TextPayload):
        return payload.text
    return json.dumps(payload.data, ensure_ascii=False, default=str)


def payload_content(payload: Union[TextPayload, RecordPayload]) -> Optional[str]:
    """Return the human-meaningful content of a payload, if it has any."""
    if isinstance(payload, TextPayload):
        return payload.text
    if "content" in payload.data:
        return str(payload.data["content"])
    return None


def truncate(text: str, limit: int) -> str:
    """Cut text to at most ``limit`` characters, the trailing '...' included."""
    if len(text) <= limit:
        return text
    if limit <= 3:
        return text[:limit]
    return text[:limit - 3] + "..."
