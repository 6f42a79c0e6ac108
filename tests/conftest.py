"""
Pytest fixtures for JagaCall tests. Uploads go to a temporary directory and
ILMU is replaced by an in-process fake that records every request.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, List, Optional

import pytest
from fastapi.testclient import TestClient

from jagacall.ai.ilmu_client import ProviderRequest
from jagacall.config import Settings
from jagacall.main import create_app
from jagacall.ratelimit import RateLimiter


class FakeProvider:
    """Stands in for IlmuClient: returns `reply` or raises `error`."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[ProviderRequest] = []
        self.on_send: Optional[Callable[[ProviderRequest], None]] = None

    def build_request(self, model, messages):
        return ProviderRequest(model=model, messages=messages)

    async def send(self, request: ProviderRequest) -> str:
        self.calls.append(request)
        if self.on_send is not None:
            self.on_send(request)
        if self.error is not None:
            raise self.error
        return self.reply

    def reply_with(self, payload: dict) -> None:
        self.reply = json.dumps(payload)


@pytest.fixture
def settings(tmp_path):
    return Settings(ilmu_api_key="test-key", upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(settings, provider):
    app = create_app(settings, provider=provider, rate_limiter=RateLimiter(None, 100, 900))
    return TestClient(app)


@pytest.fixture
def leftover_uploads(settings):
    """Files still present in the transient upload directory."""

    def _list() -> List[Path]:
        directory = Path(settings.upload_dir)
        if not directory.exists():
            return []
        return list(directory.iterdir())

    return _list
