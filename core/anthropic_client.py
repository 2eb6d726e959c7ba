# core/anthropic_client.py
import asyncio
import base64
import json
import re
from typing import Any, Dict, List, TypeVar, Union
import httpx
from pydantic import TypeAdapter, ValidationError
from config.settings import settings
import logging
from util.errors import GenerationFailed, SchemaMismatch
from util.timing import bounded, timed

logger = logging.getLogger(__name__)

T = TypeVar("T")
Content = Union[str, List[Dict[str, Any]]]

# Process-wide cap on in-flight generation requests.
_gate = asyncio.Semaphore(max(1, settings.GENERATION_CONCURRENCY))

_FENCE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


def _headers(api_key: str) -> Dict[str, str]:
    return {
        "x-api-key": api_key,
        "anthropic-version": settings.ANTHROPIC_VERSION,
        "content-type": "application/json",
    }


async def _post_json(
    url: str, headers: Dict[str, str], payload: Dict[str, Any], timeout: float = 60.0
) -> Dict[str, Any]:
    """
    Make a JSON POST to `url`. Raises for non-2xx and for a body that is not a JSON object.
    """
    async with httpx.AsyncClient(timeout=timeout) as client:
        r = await client.post(url, headers=headers, json=payload)
        r.raise_for_status()
        try:
            data = r.json()
        except ValueError as e:
            raise GenerationFailed("Generation service returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise GenerationFailed("Generation service returned an unexpected body")
        return data


def _content_text(data: Dict[str, Any]) -> str:
    """
    Concatenate the text blocks of a Messages API response.
    """
    content = data.get("content") or []
    if not isinstance(content, list):
        return ""
    parts = [
        node.get("text") or ""
        for node in content
        if isinstance(node, dict) and node.get("type") == "text"
    ]
    return "".join(parts)


def strip_fences(raw: str) -> str:
    raw = (raw or "").strip()
    m = _FENCE.match(raw)
    return m.group(1).strip() if m else raw


def image_block(data: bytes, media_type: str) -> Dict[str, Any]:
    return {
        "type": "image",
        "source": {
            "type": "base64",
            "media_type": media_type,
            "data": base64.b64encode(data).decode("ascii"),
        },
    }


def pdf_block(data: bytes) -> Dict[str, Any]:
    return {
        "type": "document",
        "source": {
            "type": "base64",
            "media_type": "application/pdf",
            "data": base64.b64encode(data).decode("ascii"),
        },
    }


async def complete(
    *,
    api_key: str,
    system: str,
    content: Content,
    label: str,
    model: str | None = None,
    max_tokens: int = 2000,
    temperature: float = 0.0,
    timeout: float | None = None,
) -> str:
    """
    One Messages API call. Returns the response text.

    Transport errors, non-2xx statuses and timeouts all surface as
    GenerationFailed so callers have a single failure path.
    """
    if not api_key:
        raise GenerationFailed("No API key configured for the generation service")
    model = model or settings.ANTHROPIC_MODEL
    timeout = timeout or settings.GENERATION_TIMEOUT_SECONDS
    payload = {
        "model": model,
        "max_tokens": max_tokens,
        "system": system,
        "messages": [{"role": "user", "content": content}],
        "temperature": temperature,
    }

    try:
        async with _gate:
            with timed(logger, f"ai.{label}", model=model):
                data = await bounded(
                    _post_json(settings.ANTHROPIC_API_URL, _headers(api_key), payload, timeout),
                    timeout,
                    f"ai.{label}",
                )
    except TimeoutError as e:
        logger.warning("ai.%s.timeout after=%ss", label, timeout)
        raise GenerationFailed(str(e)) from e
    except httpx.HTTPStatusError as e:
        code = e.response.status_code
        logger.error("ai.%s.bad_status status=%d", label, code)
        raise GenerationFailed(f"Generation service returned HTTP {code}") from e
    except httpx.RequestError as e:
        logger.error("ai.%s.request_error err=%s", label, type(e).__name__)
        raise GenerationFailed(f"Generation request failed: {type(e).__name__}") from e

    if data.get("stop_reason") == "max_tokens":
        logger.warning("ai.%s.truncated max_tokens=%d", label, max_tokens)
    text = _content_text(data)
    logger.info("ai.%s.response chars=%d", label, len(text))
    return text


def decode_json(raw: str, adapter: TypeAdapter[T], label: str) -> T:
    """
    Fail-closed decode of a generation response into `adapter`'s type.
    """
    cleaned = strip_fences(raw)
    if not cleaned:
        raise SchemaMismatch(f"{label}: empty response")
    try:
        return adapter.validate_json(cleaned)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = ".".join(str(x) for x in first.get("loc", ())) or "<root>"
        logger.warning("ai.%s.schema_mismatch errors=%d at=%s", label, e.error_count(), loc)
        raise SchemaMismatch(
            f"{label}: response did not match the expected schema ({first.get('msg', 'invalid')} at {loc})"
        ) from e


async def complete_structured(
    *,
    adapter: TypeAdapter[T],
    api_key: str,
    system: str,
    content: Content,
    label: str,
    max_tokens: int = 2000,
    timeout: float | None = None,
) -> T:
    """
    Instruction + expected JSON schema in, schema-validated value out.
    """
    schema = json.dumps(adapter.json_schema(), separators=(",", ":"))
    raw = await complete(
        api_key=api_key,
        system=f"{system}\nThe response MUST validate against this JSON schema:\n{schema}\n",
        content=content,
        label=label,
        max_tokens=max_tokens,
        temperature=0.0,
        timeout=timeout,
    )
    return decode_json(raw, adapter, label)
