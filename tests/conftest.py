from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from makeitsimple.adapters.base import BaseModelAdapter
from makeitsimple.config import Settings, get_settings
from makeitsimple.main import create_app


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Tests build their own Settings; keep the cached instance from leaking between them.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class StatusError(Exception):
    """Provider failure exposing only an integer status, like most SDK errors."""

    def __init__(self, status_code: int):
        super().__init__(f"provider status {status_code}")
        self.status_code = status_code


class StubAdapter(BaseModelAdapter):
    """Deterministic provider.

    `outcomes` is consumed one entry per call: exceptions are raised,
    strings are returned as the response text. Once exhausted, `default`
    is returned.
    """

    name = "stub"

    def __init__(self, outcomes: Optional[List[Any]] = None, default: str = "A. B. C."):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.prompts: List[str] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str, system_prompt: Optional[str] = None, model: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        self.prompts.append(prompt)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return {"response": outcome, "model": "stub-v1", "provider": self.name, "tokens_used": 3}

    async def aclose(self) -> None:
        self.closed = True


def make_settings(**overrides) -> Settings:
    values = {"GEMINI_API_KEY": "test-key", "INITIAL_BACKOFF_MS": 0}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def stub_adapter():
    return StubAdapter()


@pytest.fixture
def make_client():
    def _make(adapter: Optional[BaseModelAdapter] = None, **overrides) -> TestClient:
        return TestClient(create_app(make_settings(**overrides), adapter=adapter))

    return _make


@pytest.fixture
def client(make_client, stub_adapter):
    return make_client(stub_adapter)
