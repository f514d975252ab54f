"""Parse and check untrusted completion text against the result contracts.

:func:`validate_response` never raises for bad input: it returns ``Ok`` with a
fully typed result or ``Err`` describing why the text was rejected. There is
no repair step; fenced or chatty output is rejected like any other non-JSON.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from .schemas import InsightKind, InsightResult, RESULT_MODELS

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


@dataclass(frozen=True)
class MalformedJson:
    """The completion is not parseable JSON."""

    detail: str

    code = "malformed_json"

    @property
    def message(self) -> str:
        return f"Response is not valid JSON: {self.detail}"


@dataclass(frozen=True)
class SchemaMismatch:
    """The JSON parsed but a required key is missing or has the wrong shape."""

    key: str
    reason: str

    code = "schema_mismatch"

    @property
    def message(self) -> str:
        return f"Response field '{self.key}' {self.reason}"


ResponseRejection = Union[MalformedJson, SchemaMismatch]
ValidationOutcome = Union[Ok[InsightResult], Err[ResponseRejection]]

_TYPE_NAMES = {
    "dict_type": "must be an object",
    "model_type": "must be an object",
    "list_type": "must be a list",
    "float_type": "must be a number",
    "int_type": "must be a number",
    "string_type": "must be a string",
}


def _reject_constant(name: str) -> float:
    raise ValueError(f"non-standard JSON constant {name}")


def _describe(error: dict) -> SchemaMismatch:
    key = ".".join(str(part) for part in error.get("loc", ())) or "$"
    error_type = error.get("type", "")
    if error_type == "missing":
        return SchemaMismatch(key=key, reason="is missing")
    reason = _TYPE_NAMES.get(error_type) or error.get("msg", "is invalid").lower()
    return SchemaMismatch(key=key, reason=reason)


def validate_response(kind: InsightKind, raw_text: str) -> ValidationOutcome:
    """Turn completion text into a typed result for ``kind``."""
    if not isinstance(raw_text, str):
        return Err(MalformedJson(detail="completion is not text"))

    try:
        raw_text.encode("utf-8")
    except UnicodeEncodeError:
        logger.info("Rejected %s completion: text is not valid unicode", kind.value)
        return Err(MalformedJson(detail="text contains an unpaired surrogate"))

    try:
        data = json.loads(raw_text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        logger.info("Rejected %s completion: not JSON (%s)", kind.value, exc.msg)
        return Err(MalformedJson(detail=f"{exc.msg} at line {exc.lineno} column {exc.colno}"))
    except RecursionError:
        logger.info("Rejected %s completion: nesting too deep", kind.value)
        return Err(MalformedJson(detail="nesting is too deep"))
    except ValueError as exc:
        logger.info("Rejected %s completion: %s", kind.value, exc)
        return Err(MalformedJson(detail=str(exc)))

    if not isinstance(data, dict):
        return Err(SchemaMismatch(key="$", reason="must be an object"))

    model = RESULT_MODELS[kind]
    try:
        # Strict JSON mode keeps "5" from passing as a number and 1 as a string.
        result = model.model_validate_json(raw_text, strict=True)
    except PydanticValidationError as exc:
        errors = exc.errors()
        if errors and errors[0].get("type") in ("json_invalid", "string_unicode"):
            return Err(MalformedJson(detail=errors[0].get("msg", "invalid JSON")))
        mismatch = _describe(errors[0]) if errors else SchemaMismatch(key="$", reason="is invalid")
        logger.info("Rejected %s completion: %s", kind.value, mismatch.message)
        return Err(mismatch)

    return Ok(result)


__all__ = [
    "Err",
    "MalformedJson",
    "Ok",
    "ResponseRejection",
    "SchemaMismatch",
    "ValidationOutcome",
    "validate_response",
]
