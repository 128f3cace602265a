"""
Action kinds and parameter schemas for ThinkGate.

The gate only reasons about actions; it never executes them. Each
action kind has a pydantic parameter schema validated at the gate
boundary, and each schema knows how to derive the query string used
for the evidence cache key.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import InvalidParamsError

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    """Actions the external executor is known to perform."""
    READ_FILE = "read_file"
    LIST_FILES = "list_files"
    SEARCH_FILES = "search_files"
    WRITE_FILE = "write_to_file"
    EDIT_FILE = "replace_in_file"
    REASONING = "reasoning"


EXPLORATORY_ACTIONS = frozenset({
    ActionKind.READ_FILE.value,
    ActionKind.LIST_FILES.value,
    ActionKind.SEARCH_FILES.value,
})

MUTATING_ACTIONS = frozenset({
    ActionKind.WRITE_FILE.value,
    ActionKind.EDIT_FILE.value,
})

DEEP_REASONING_ACTION = ActionKind.REASONING.value


def action_name(action: Union[ActionKind, str]) -> str:
    """Canonical string name of an action kind."""
    if isinstance(action, ActionKind):
        return action.value
    return str(action or "").strip()


def is_exploratory(action: Union[ActionKind, str]) -> bool:
    return action_name(action) in EXPLORATORY_ACTIONS


def is_mutating(action: Union[ActionKind, str]) -> bool:
    return action_name(action) in MUTATING_ACTIONS


def is_deep_reasoning(action: Union[ActionKind, str]) -> bool:
    return action_name(action) == DEEP_REASONING_ACTION


# =============================================================================
# Parameter schemas
# =============================================================================

class ActionParams(BaseModel):
    """
    Parameters of an action without a dedicated schema.

    Unknown keys are kept so the derived query reflects everything the
    caller passed.
    """
    model_config = ConfigDict(extra="allow")

    path: Optional[str] = None

    def derive_query(self) -> str:
        return json.dumps(self.model_dump(exclude_none=True), sort_keys=True, default=str)


class ReadFileParams(ActionParams):
    def derive_query(self) -> str:
        return self.path or ""


class ListFilesParams(ActionParams):
    recursive: Optional[bool] = None

    def derive_query(self) -> str:
        return self.path or ""


class SearchParams(ActionParams):
    regex: Optional[str] = None
    query: Optional[str] = None
    file_pattern: Optional[str] = None

    def derive_query(self) -> str:
        return self.regex or self.query or ""


class WriteFileParams(ActionParams):
    content: Optional[str] = None


class EditFileParams(ActionParams):
    diff: Optional[str] = None


class ReasoningParams(ActionParams):
    function: Optional[str] = None


PARAM_SCHEMAS: Dict[str, Type[ActionParams]] = {
    ActionKind.READ_FILE.value: ReadFileParams,
    ActionKind.LIST_FILES.value: ListFilesParams,
    ActionKind.SEARCH_FILES.value: SearchParams,
    ActionKind.WRITE_FILE.value: WriteFileParams,
    ActionKind.EDIT_FILE.value: EditFileParams,
    ActionKind.REASONING.value: ReasoningParams,
}


def validate_params(action: Union[ActionKind, str], raw: Any) -> ActionParams:
    """
    Validate raw parameters against the action's schema.

    Raises:
        InvalidParamsError: If the parameters do not fit the schema
    """
    name = action_name(action)
    schema = PARAM_SCHEMAS.get(name, ActionParams)

    if raw is None:
        return schema()
    if isinstance(raw, schema):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        raise InvalidParamsError(name, f"expected a mapping, got {type(raw).__name__}")

    try:
        return schema.model_validate(dict(raw))
    except ValidationError as e:
        raise InvalidParamsError(name, f"{e.error_count()} validation error(s)") from e


def parse_params(action: Union[ActionKind, str], raw: Any) -> ActionParams:
    """
    Lenient variant of validate_params().

    Malformed parameters fall back to the schema defaults (empty query,
    no path) instead of failing.
    """
    try:
        return validate_params(action, raw)
    except InvalidParamsError as e:
        logger.warning(f"[GATE] {e}; falling back to defaults")
        return PARAM_SCHEMAS.get(action_name(action), ActionParams)()
