"""Turn free-text model output into validated stage payloads.

Every stage goes through ``parse_stage``, which never raises: it returns a
``StageParse`` carrying either the decoded value or a human-readable reason.
"""
from __future__ import annotations

import itertools
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from jsonschema.validators import Draft202012Validator

STRUCTURE = "structure"
STYLE = "style"
CODE = "code"
QA = "qa"

_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}
_STRING_LIST = {"type": "array", "items": {"type": "string"}}

STAGE_SCHEMAS: Dict[str, Dict[str, Any]] = {
    STRUCTURE: {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "object",
    },
    STYLE: {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "array",
        "items": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "description": {"type": "string"},
                "theme": {"type": "string"},
                "colors": _STRING_MAP,
                "typography": _STRING_MAP,
                "spacing": _STRING_MAP,
                "components": _STRING_MAP,
                "animations": _STRING_LIST,
                "responsive": _STRING_MAP,
            },
        },
    },
    CODE: {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "array",
        "items": {
            "type": "object",
            "required": ["themeName", "html"],
            "properties": {
                "themeName": {"type": "string"},
                "html": {"type": "string"},
                "css": {"type": "string"},
                "js": {"type": "string"},
            },
        },
    },
    QA: {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "array",
        "items": {
            "type": "object",
            "required": ["themeName", "qaScore"],
            "properties": {
                "themeName": {"type": "string"},
                "qaScore": {"type": "number"},
                "accessibilityIssues": _STRING_LIST,
            },
        },
    },
}

_VALIDATORS = {stage: Draft202012Validator(schema) for stage, schema in STAGE_SCHEMAS.items()}

# Keys models like to wrap an array payload in
_ARRAY_WRAPPER_KEYS = ("themes", "variants", "implementations", "results", "reviews", "items", "data")


@dataclass(frozen=True)
class StageParse:
    stage: str
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, stage: str, value: Any) -> "StageParse":
        return cls(stage=stage, ok=True, value=value)

    @classmethod
    def failure(cls, stage: str, reason: str) -> "StageParse":
        return cls(stage=stage, ok=False, error=reason)


def _balanced_json_spans(s: str) -> Iterator[str]:
    """Yield each top-level balanced {...} or [...] span in order, string-aware.

    Quotes toggle string state at any depth, so brackets inside quoted prose
    never open a span.
    """
    in_str = False
    esc = False
    stack: List[str] = []
    start_idx = -1
    pairs = {"{": "}", "[": "]"}
    for i, ch in enumerate(s):
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
            continue
        if ch in pairs:
            if not stack:
                start_idx = i
            stack.append(pairs[ch])
        elif stack and ch == stack[-1]:
            stack.pop()
            if not stack:
                yield s[start_idx : i + 1]
        elif stack and ch in "}]":
            # mismatched closer: drop the partial span
            stack = []


def _sanitize(candidate: str) -> str:
    s = re.sub(r",\s*([}\]])", r"\1", candidate)
    return s.replace("“", '"').replace("”", '"').replace("’", "'")


def _decoded_candidates(text: str) -> Iterator[Any]:
    """Yield every JSON value recoverable from model text, best guess first.

    Order:
    - Whole text as JSON.
    - Fenced blocks: ```json ...``` first, then any ``` ... ```.
    - Each top-level balanced {...} / [...] span, left to right.
    Each candidate is retried once after sanitizing (trailing commas, smart quotes).
    """
    t = (text or "").strip()
    if not t:
        return
    try:
        yield json.loads(t)
    except ValueError:
        pass

    candidates: List[str] = []
    m = re.search(r"```json\s*([\s\S]*?)```", t, re.IGNORECASE)
    if m:
        candidates.append(m.group(1))
    else:
        m2 = re.search(r"```\s*([\s\S]*?)```", t)
        if m2:
            candidates.append(m2.group(1))

    for candidate in itertools.chain(candidates, _balanced_json_spans(t)):
        candidate = candidate.strip()
        if not candidate:
            continue
        try:
            yield json.loads(candidate)
        except ValueError:
            try:
                yield json.loads(_sanitize(candidate))
            except ValueError:
                continue


def json_from_text(text: str) -> Any:
    """Return the first JSON value found in model text; raise ValueError on failure."""
    if not (text or "").strip():
        raise ValueError("empty model output")
    for value in _decoded_candidates(text):
        return value
    raise ValueError("No JSON content found")


def _unwrap_array(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    for key in _ARRAY_WRAPPER_KEYS:
        inner = value.get(key)
        if isinstance(inner, list):
            return inner
    lists = [v for v in value.values() if isinstance(v, list)]
    if len(value) == 1 and len(lists) == 1:
        return lists[0]
    return value


def _describe_errors(validator: Draft202012Validator, value: Any) -> Optional[str]:
    errors = sorted(validator.iter_errors(value), key=lambda e: list(e.path))
    if not errors:
        return None
    parts = []
    for err in errors[:3]:
        loc = ".".join(str(p) for p in err.path) or "(root)"
        parts.append(f"{loc}: {err.message}")
    return "; ".join(parts)


def parse_stage(stage: str, text: str) -> StageParse:
    """Decode and validate one stage's output. Never raises.

    The first candidate that satisfies the stage schema wins, so bracketed
    prose ahead of the payload is skipped. When nothing validates, the error
    describes the first decoded candidate.
    """
    validator = _VALIDATORS.get(stage)
    if validator is None:
        return StageParse.failure(stage, f"unknown stage {stage!r}")
    if not (text or "").strip():
        return StageParse.failure(stage, "empty model output")
    first_problem: Optional[str] = None
    for value in _decoded_candidates(text):
        if stage != STRUCTURE:
            value = _unwrap_array(value)
        problem = _describe_errors(validator, value)
        if problem is None:
            return StageParse.success(stage, value)
        if first_problem is None:
            first_problem = problem
    return StageParse.failure(stage, first_problem or "No JSON content found")
