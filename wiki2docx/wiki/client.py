from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from wiki2docx.core.config import DEFAULT_LANG, DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, DEFAULT_WORKERS
from wiki2docx.core.errors import APIError, NetworkError, NotFoundError, ParseError
from wiki2docx.core.models import Article
from wiki2docx.infra.logging import get_unified_logger
from wiki2docx.wiki.ratelimit import RateLimiter

# list=random caps rnlimit at 500 (bots) or 10 (anonymous); larger values are clamped server-side
RANDOM_BATCH_MAX = 500
RANDOM_ATTEMPT_FACTOR = 3
BODY_CHUNK_SIZE = 16 * 1024

_log = get_unified_logger("wiki", "client")


@dataclass
class WikiConfig:
    lang: str = DEFAULT_LANG
    timeout: float = DEFAULT_TIMEOUT
    workers: int = DEFAULT_WORKERS
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def api_url(self) -> str:
        return f"https://{self.lang}.wikipedia.org/w/api.php"


def _build_session(cfg: WikiConfig) -> requests.Session:
    # one attempt per request; the pool must hold a connection per worker
    retry = Retry(total=0, read=False)
    pool = max(1, cfg.workers) + 2
    adapter = HTTPAdapter(pool_connections=pool, pool_maxsize=pool, max_retries=retry)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": cfg.user_agent, "Accept": "application/json"})
    return session


class WikiClient:
    """MediaWiki API client shared by all workers of a run.

    The session (and its connection pool) and the rate limiter are shared;
    both are safe to use from several threads.
    """

    def __init__(
        self,
        config: Optional[WikiConfig] = None,
        limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or WikiConfig()
        self.limiter = limiter or RateLimiter(0)
        self.session = session if session is not None else _build_session(self.config)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "WikiClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _query(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Rate-limited GET against the API; returns the decoded JSON object.

        ``config.timeout`` bounds the whole exchange. ``requests`` only bounds
        each connect or read, so the body is streamed against a deadline.
        """
        self.limiter.wait()
        timeout = self.config.timeout
        deadline = time.monotonic() + timeout
        try:
            resp = self.session.get(self.config.api_url, params=params, timeout=timeout, stream=True)
        except requests.Timeout as e:
            raise NetworkError(f"timeout after {timeout:g}s") from e
        except requests.RequestException as e:
            raise NetworkError(f"request error: {e}") from e

        try:
            if resp.status_code != 200:
                raise APIError(resp.status_code)
            body = bytearray()
            for chunk in resp.iter_content(chunk_size=BODY_CHUNK_SIZE):
                body.extend(chunk)
                if time.monotonic() > deadline:
                    raise NetworkError(f"timeout after {timeout:g}s")
        except requests.Timeout as e:
            raise NetworkError(f"timeout after {timeout:g}s") from e
        except requests.RequestException as e:
            raise NetworkError(f"request error: {e}") from e
        finally:
            resp.close()

        try:
            data = json.loads(bytes(body))
        except ValueError as e:
            raise ParseError(f"invalid JSON response: {e}") from e
        if not isinstance(data, dict):
            raise ParseError(f"unexpected JSON payload of type {type(data).__name__}")

        err = data.get("error")
        if isinstance(err, dict):
            code = str(err.get("code") or "unknown")
            raise APIError(resp.status_code, err.get("info") or None, code=code)
        return data

    def fetch_article(self, title: str) -> Article:
        """Fetch the plain-text extract of ``title``, following redirects.

        Raises:
            NetworkError, APIError, ParseError, NotFoundError
        """
        params = {
            "action": "query",
            "prop": "extracts",
            "explaintext": "1",
            "titles": title,
            "format": "json",
            "redirects": "1",
        }
        _log.debug("Fetching article %s", title)
        data = self._query(params)

        query = data.get("query") or {}
        if not isinstance(query, dict):
            raise ParseError("'query' is not an object")
        pages = query.get("pages") or {}
        if not isinstance(pages, dict):
            raise ParseError("'query.pages' is not an object")

        # a single-title query yields one page; with several, which wins is undefined
        for page in pages.values():
            if not isinstance(page, dict):
                raise ParseError("page record is not an object")
            if "missing" in page or "invalid" in page:
                raise NotFoundError(title)
            return Article(
                title=str(page.get("title") or title),
                content=str(page.get("extract") or ""),
            )
        raise NotFoundError(title)

    def random_titles(self, limit: int) -> List[str]:
        """Return up to ``limit`` distinct random main-namespace titles.

        Keeps asking until ``limit`` unique titles are collected, a batch comes
        back empty or ``3 * limit`` requests have been made.
        """
        if limit <= 0:
            return []
        seen: set[str] = set()
        result: List[str] = []
        max_attempts = limit * RANDOM_ATTEMPT_FACTOR
        attempts = 0

        while len(result) < limit and attempts < max_attempts:
            attempts += 1
            batch_size = min(limit - len(result), RANDOM_BATCH_MAX)
            data = self._query(
                {
                    "action": "query",
                    "list": "random",
                    "rnnamespace": "0",
                    "rnlimit": str(batch_size),
                    "format": "json",
                }
            )
            batch = (data.get("query") or {}).get("random") or []
            if not isinstance(batch, list):
                raise ParseError("'query.random' is not a list")
            if not batch:
                _log.info("Random endpoint returned an empty batch after %d request(s)", attempts)
                break
            for item in batch:
                t = item.get("title") if isinstance(item, dict) else None
                if not t or t in seen:
                    continue
                seen.add(t)
                result.append(t)
                if len(result) >= limit:
                    break

        if len(result) < limit:
            _log.warning("Collected %d of %d random titles (%d requests)", len(result), limit, attempts)
        return result
