"""Turn a model completion into a validated schema instance."""

import json
import re
from typing import Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from prepcoach.domains.coaching.exceptions import AnalysisFailedError

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def extract_json_text(text: str) -> str:
    """Strip markdown fences and any prose around the outermost JSON object."""
    stripped = text.strip()
    match = _FENCE.match(stripped)
    if match:
        stripped = match.group(1).strip()
    if stripped.startswith("{"):
        return stripped
    start, end = stripped.find("{"), stripped.rfind("}")
    if start == -1 or end <= start:
        return stripped
    return stripped[start : end + 1]


def parse_completion(text: str, model: Type[ModelT], operation: str) -> ModelT:
    """Parse ``text`` as JSON and validate it against ``model``.

    Raises:
        AnalysisFailedError: The text is not JSON or does not match ``model``.
    """
    try:
        payload = json.loads(extract_json_text(text))
    except json.JSONDecodeError as e:
        raise AnalysisFailedError(operation, f"Model reply for {operation} is not JSON") from e
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise AnalysisFailedError(
            operation,
            f"Model reply for {operation} does not match schema ({e.error_count()} errors)",
        ) from e
