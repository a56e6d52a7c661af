from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

import httpx

from taxcheck.settings import AiProviderConfig

DEFAULT_TIMEOUT_SECONDS = 8.0

_FENCE_PATTERN = re.compile(r"\A```(?:json)?\s*(.*?)\s*```\Z", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class LlmJsonResult:
    status: str
    raw_response: str | None
    warnings: list[str]


def unwrap_json_fence(text: str) -> str:
    """Strip a markdown code fence around model output, if there is one."""

    stripped = text.strip()
    match = _FENCE_PATTERN.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def loads_strict_json(text: str | bytes) -> Any:
    """Decode JSON, refusing the NaN and Infinity literals Python accepts by default."""

    return json.loads(text, parse_constant=_reject_constant)


def parse_json_content(text: Any) -> Any | None:
    if not isinstance(text, str) or not text.strip():
        return None
    try:
        return loads_strict_json(unwrap_json_fence(text))
    except (ValueError, RecursionError):
        return None


def _http_error_warning(provider_name: str, response: httpx.Response) -> str:
    response_excerpt = ""
    response_body = response.text.strip()

    if response_body:
        try:
            parsed = json.loads(response_body)
            if isinstance(parsed, dict):
                error_payload = parsed.get("error")
                if isinstance(error_payload, dict):
                    message = error_payload.get("message")
                    if isinstance(message, str) and message.strip():
                        response_excerpt = message.strip()
        except json.JSONDecodeError:
            response_excerpt = response_body[:200]

    if response_excerpt:
        return f"{provider_name} request failed with HTTP {response.status_code}: {response_excerpt}"

    return f"{provider_name} request failed with HTTP {response.status_code}."


def _extract_chat_completion_text(response_payload: Any) -> str | None:
    if not isinstance(response_payload, dict):
        return None

    choices = response_payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None

    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None

    content = message.get("content")
    if isinstance(content, str) and content.strip():
        return content
    return None


async def _post_json(
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str],
    *,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        return await client.post(url, json=payload, headers=headers)


def chat_completions_url(config: AiProviderConfig) -> str:
    return (
        f"{config.endpoint}/openai/deployments/{config.deployment}/chat/completions"
        f"?api-version={config.api_version}"
    )


async def complete_chat_with_azure_openai(
    config: AiProviderConfig,
    *,
    system_prompt: str,
    prompt: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    temperature: float = 0.3,
    max_tokens: int = 2000,
    transport: httpx.AsyncBaseTransport | None = None,
) -> LlmJsonResult:
    """Send one chat completion request; the outcome is always a result, never an exception."""

    payload = {
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
        "response_format": {"type": "json_object"},
    }
    try:
        response = await _post_json(
            chat_completions_url(config),
            payload,
            {
                "Content-Type": "application/json",
                "api-key": config.api_key,
            },
            timeout=timeout,
            transport=transport,
        )
    except httpx.TimeoutException:
        return LlmJsonResult(
            status="error",
            raw_response=None,
            warnings=[f"Azure OpenAI request timed out after {timeout:g} seconds."],
        )
    except httpx.HTTPError:
        return LlmJsonResult(
            status="error",
            raw_response=None,
            warnings=["Azure OpenAI request failed before receiving a response."],
        )

    if not response.is_success:
        return LlmJsonResult(
            status="error",
            raw_response=None,
            warnings=[_http_error_warning("Azure OpenAI", response)],
        )

    try:
        response_payload = loads_strict_json(response.content)
    except (ValueError, RecursionError):
        return LlmJsonResult(
            status="error",
            raw_response=response.text[:200],
            warnings=["Azure OpenAI response body was not valid JSON."],
        )

    extracted_text = _extract_chat_completion_text(response_payload)
    if extracted_text:
        return LlmJsonResult(status="success", raw_response=extracted_text, warnings=[])

    return LlmJsonResult(
        status="error",
        raw_response=json.dumps(response_payload),
        warnings=["Azure OpenAI response did not contain message content."],
    )
