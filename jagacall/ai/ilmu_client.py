# jagacall/ai/ilmu_client.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import requests
from starlette.concurrency import run_in_threadpool

from jagacall.config import Settings
from jagacall.errors import UpstreamError, UpstreamTimeout, UpstreamUnreachable

logger = logging.getLogger("jagacall")

# Upstream bodies can be large; only this much is kept on UpstreamError.
_ERROR_BODY_LIMIT = 2000


@dataclass(frozen=True)
class ProviderRequest:
    model: str
    messages: List[Dict[str, str]]
    max_tokens: int = 400
    temperature: float = 0.2


class IlmuClient:
    """
    Thin client for ILMU's OpenAI-compatible chat completions endpoint.

    One attempt per request: no retries. Generation parameters come from
    `Settings` and cannot be changed per request.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._url = f"{settings.ilmu_base_url.rstrip('/')}/chat/completions"

    def build_request(self, model: str, messages: List[Dict[str, str]]) -> ProviderRequest:
        return ProviderRequest(
            model=model,
            messages=messages,
            max_tokens=self._settings.max_tokens,
            temperature=self._settings.temperature,
        )

    async def send(self, request: ProviderRequest) -> str:
        # requests is blocking; keep it off the event loop
        return await run_in_threadpool(self._post, request)

    def _post(self, request: ProviderRequest) -> str:
        timeout = self._settings.upstream_timeout
        try:
            resp = requests.post(
                self._url,
                headers={
                    "Authorization": f"Bearer {self._settings.ilmu_api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": request.model,
                    "api_key": self._settings.ilmu_api_key,
                    "messages": request.messages,
                    "max_tokens": request.max_tokens,
                    "temperature": request.temperature,
                },
                timeout=timeout,
            )
        except requests.Timeout as exc:
            raise UpstreamTimeout(timeout) from exc
        except requests.RequestException as exc:
            raise UpstreamUnreachable(f"ILMU API unreachable: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise UpstreamError(resp.status_code, (resp.text or "")[:_ERROR_BODY_LIMIT])

        try:
            payload = resp.json()
        except ValueError:
            logger.warning("ILMU API returned a non-JSON body (model=%s)", request.model)
            return ""
        return extract_content(payload)


def extract_content(payload: Any) -> str:
    """First choice's message content, or "" when the reply has another shape."""
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""
