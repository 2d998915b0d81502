from __future__ import annotations
import json
import logging
import os
from typing import Any, Dict, Iterator, List, Optional

import requests


log = logging.getLogger(__name__)

CEREBRAS_API_KEY = os.getenv("CEREBRAS_API_KEY", "").strip()
_ENV_CEREBRAS_API_KEY = CEREBRAS_API_KEY
CEREBRAS_BASE_URL = os.getenv("CEREBRAS_BASE_URL", "https://api.cerebras.ai/v1").strip().rstrip("/")
CEREBRAS_MODEL = os.getenv("CEREBRAS_MODEL", "llama-4-maverick-17b-128e-instruct").strip()
CEREBRAS_ENDPOINT = f"{CEREBRAS_BASE_URL}/chat/completions"

try:
    TEMPERATURE = float(os.getenv("TEMPERATURE", "0.6"))
except Exception:
    TEMPERATURE = 0.6
try:
    TOP_P = float(os.getenv("TOP_P", "0.9"))
except Exception:
    TOP_P = 0.9
try:
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4096"))
except Exception:
    LLM_MAX_TOKENS = 4096
try:
    LLM_TIMEOUT_SECS = int(os.getenv("LLM_TIMEOUT_SECS", "75"))
except Exception:
    LLM_TIMEOUT_SECS = 75

Message = Dict[str, str]

_FALLBACK_STYLE = "I can help you adjust the color scheme and styling. What specific changes would you like to make?"
_FALLBACK_LAYOUT = "I can help restructure the layout and components. What layout changes are you looking for?"
_FALLBACK_EXPORT = (
    "I can help you export your design. Which format would you prefer - React, Vue, or vanilla HTML/CSS?"
)
_FALLBACK_GENERIC = (
    "I understand your request. Let me help you improve your UI design. "
    "Could you be more specific about what you'd like to change?"
)

# Checked in order; first keyword hit picks the reply.
_FALLBACK_RULES = (
    (("color", "style"), _FALLBACK_STYLE),
    (("layout", "structure"), _FALLBACK_LAYOUT),
    (("export", "download"), _FALLBACK_EXPORT),
)


def _testing_stub_enabled() -> bool:
    """Return True when pytest is running and the key still matches its value at import."""
    if not os.getenv("PYTEST_CURRENT_TEST"):
        return False
    if os.getenv("RUN_LIVE_LLM_TESTS", "0").lower() in {"1", "true", "yes", "on"}:
        return False
    if CEREBRAS_API_KEY != _ENV_CEREBRAS_API_KEY:
        return False
    return True


def has_credentials() -> bool:
    return bool(CEREBRAS_API_KEY) and not _testing_stub_enabled()


def status() -> Dict[str, Any]:
    if _testing_stub_enabled():
        return {"provider": None, "model": None, "has_token": False, "using": "stub", "testing": True}
    if CEREBRAS_API_KEY:
        return {"provider": "cerebras", "model": CEREBRAS_MODEL, "has_token": True, "using": "cerebras"}
    return {"provider": None, "model": None, "has_token": False, "using": "stub"}


def probe() -> Dict[str, Any]:
    """Send one tiny completion to confirm the credential works."""
    if not has_credentials():
        return {"ok": False, "using": "stub", "error": "API key not configured"}
    text = _request_completion(
        [{"role": "user", "content": "Reply with the single word: ok"}],
        model=None,
        temperature=0.0,
        max_tokens=8,
    )
    return {"ok": text is not None, "using": "cerebras", "model": CEREBRAS_MODEL}


def fallback_response(messages: List[Message]) -> str:
    """Deterministic reply chosen from keywords in the last user message."""
    last = ""
    for msg in reversed(messages or []):
        if not isinstance(msg, dict):
            continue
        if msg.get("role") == "user":
            last = str(msg.get("content") or "")
            break
    lowered = last.lower()
    for keywords, reply in _FALLBACK_RULES:
        if any(k in lowered for k in keywords):
            return reply
    return _FALLBACK_GENERIC


def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {CEREBRAS_API_KEY}",
        "Content-Type": "application/json",
    }


def _build_body(
    messages: List[Message],
    model: Optional[str],
    temperature: Optional[float],
    max_tokens: Optional[int],
    stream: bool = False,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "messages": messages,
        "model": model or CEREBRAS_MODEL,
        "max_tokens": max_tokens if max_tokens is not None else LLM_MAX_TOKENS,
        "temperature": temperature if temperature is not None else TEMPERATURE,
        "top_p": TOP_P,
    }
    if stream:
        body["stream"] = True
    return body


def _request_completion(
    messages: List[Message],
    model: Optional[str],
    temperature: Optional[float],
    max_tokens: Optional[int],
) -> Optional[str]:
    """One POST to the chat completions endpoint; None on any failure."""
    body = _build_body(messages, model, temperature, max_tokens)
    try:
        resp = requests.post(CEREBRAS_ENDPOINT, headers=_headers(), json=body, timeout=LLM_TIMEOUT_SECS)
    except Exception as e:
        log.warning("Cerebras request error: %r", e)
        return None

    if resp.status_code != 200:
        try:
            msg = resp.text[:400]
        except Exception:
            msg = str(resp.status_code)
        log.warning("Cerebras HTTP %s: %s", resp.status_code, msg)
        return None

    try:
        data = resp.json()
    except Exception:
        log.warning("Cerebras: non-JSON HTTP body")
        return None

    try:
        text = data.get("choices", [{}])[0].get("message", {}).get("content")
    except Exception:
        text = None
    if not text or not isinstance(text, str):
        log.warning("Cerebras: empty response text")
        return None
    return text


def complete(
    messages: List[Message],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> str:
    """Return the model's reply, or the keyword fallback when the model is unavailable.

    Never raises: a missing key, transport error, non-200 status or malformed
    body all degrade to ``fallback_response(messages)``. One attempt, no retries.
    """
    if not messages:
        log.info("Empty message list; using fallback response")
        return fallback_response(messages)
    if not has_credentials():
        log.info("Cerebras API key not configured; using fallback response")
        return fallback_response(messages)
    text = _request_completion(messages, model, temperature, max_tokens)
    if text is None:
        return fallback_response(messages)
    return text


def _delta_from_sse_line(line: str) -> Optional[str]:
    """Return the content delta of one `data: {...}` line, '' for [DONE], None to skip."""
    if not line.startswith("data:"):
        return None
    data = line[len("data:"):].strip()
    if data == "[DONE]":
        return ""
    try:
        parsed = json.loads(data)
        content = parsed["choices"][0].get("delta", {}).get("content")
    except Exception:
        return None
    return content if isinstance(content, str) and content else None


def stream_complete(
    messages: List[Message],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> Iterator[str]:
    """Yield content chunks from a server-sent-event completion stream.

    Falls back to a single fallback chunk when the key is missing or the call
    fails before any content arrived.
    """
    if not messages or not has_credentials():
        yield fallback_response(messages)
        return

    body = _build_body(messages, model, temperature, max_tokens, stream=True)
    emitted = False
    resp = None
    try:
        resp = requests.post(
            CEREBRAS_ENDPOINT,
            headers=_headers(),
            json=body,
            timeout=LLM_TIMEOUT_SECS,
            stream=True,
        )
        if resp.status_code != 200:
            raise RuntimeError(f"HTTP {resp.status_code}")
        for raw in resp.iter_lines(decode_unicode=True):
            if not raw:
                continue
            line = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
            delta = _delta_from_sse_line(line.strip())
            if delta is None:
                continue
            if delta == "":
                break
            emitted = True
            yield delta
    except Exception as e:
        log.warning("Cerebras streaming error: %r", e)
        if not emitted:
            yield fallback_response(messages)
        return
    finally:
        # also runs when the consumer stops iterating early
        if resp is not None:
            resp.close()
    if not emitted:
        log.warning("Cerebras stream ended without content")
        yield fallback_response(messages)
