# tests/conftest.py
import os
import sys
from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock

import pytest

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)


class ScriptedTransport:
    """
    A fake lookup transport that replays queued responses in order and
    records every query it receives. Queued exceptions are raised.
    """
    def __init__(self, *responses: Any):
        self.responses: List[Any] = list(responses)
        self.calls: List[Any] = []

    def queue(self, *responses: Any) -> "ScriptedTransport":
        self.responses.extend(responses)
        return self

    async def __call__(self, query):
        self.calls.append(query)
        if not self.responses:
            raise AssertionError(f"Unexpected transport call with {query!r}")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Replaces the retry delay so tests never actually wait."""
    return AsyncMock()


@pytest.fixture
def scripted_transport() -> Callable[..., ScriptedTransport]:
    return ScriptedTransport


@pytest.fixture
def transports_by_entity() -> Dict[str, ScriptedTransport]:
    """One ScriptedTransport per entity name, created on first use by a store."""
    return {}
