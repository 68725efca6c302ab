# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import sys
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest


def pytest_sessionstart(session) -> None:
    # Ensure project root is importable for tests
    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))


class FakeResponse:
    """Minimal streamed response: ``payload`` is served as JSON, else ``text``.

    ``chunks`` overrides the body; ``delay`` sleeps before each chunk.
    """

    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        text: str = "",
        chunks: Optional[List[bytes]] = None,
        delay: float = 0.0,
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text
        if chunks is None:
            body = json.dumps(payload).encode("utf-8") if payload is not None else text.encode("utf-8")
            chunks = [body[i : i + 7] for i in range(0, len(body), 7)]
        self._chunks = chunks
        self.delay = delay
        self.closed = False

    def iter_content(self, chunk_size: int = 1, decode_unicode: bool = False) -> Iterator[bytes]:
        for chunk in self._chunks:
            if self.delay:
                time.sleep(self.delay)
            yield chunk

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Stands in for ``requests.Session``; ``responder(params)`` builds each response."""

    def __init__(self, responder: Callable[[Dict[str, Any]], Any]) -> None:
        self.responder = responder
        self.calls: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}
        self.closed = False
        self._lock = threading.Lock()

    def get(
        self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Any = None, stream: bool = False
    ) -> Any:
        with self._lock:
            self.calls.append(
                {"url": url, "params": dict(params or {}), "timeout": timeout, "stream": stream}
            )
        result = self.responder(dict(params or {}))
        if isinstance(result, BaseException):
            raise result
        return result

    def close(self) -> None:
        self.closed = True


def page_payload(title: str, extract: str, pageid: str = "736") -> Dict[str, Any]:
    return {
        "batchcomplete": "",
        "query": {"pages": {pageid: {"pageid": int(pageid), "ns": 0, "title": title, "extract": extract}}},
    }


@pytest.fixture
def fake_session() -> Callable[[Callable[[Dict[str, Any]], Any]], FakeSession]:
    return FakeSession


@pytest.fixture
def make_response() -> Callable[..., FakeResponse]:
    return FakeResponse


@pytest.fixture
def make_page() -> Callable[..., Dict[str, Any]]:
    return page_payload
