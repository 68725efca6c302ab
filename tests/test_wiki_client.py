from __future__ import annotations

import pytest
import requests

from wiki2docx.core.errors import APIError, NetworkError, NotFoundError, ParseError
from wiki2docx.wiki import client as wc
from wiki2docx.wiki.client import WikiClient, WikiConfig


class CountingLimiter:
    def __init__(self) -> None:
        self.calls = 0

    def wait(self) -> None:
        self.calls += 1


def _client(session, lang="en", limiter=None):
    return WikiClient(WikiConfig(lang=lang, timeout=7), limiter=limiter, session=session)


def test_api_url_uses_language_prefix():
    assert WikiConfig(lang="ru").api_url == "https://ru.wikipedia.org/w/api.php"
    assert WikiConfig().api_url == "https://en.wikipedia.org/w/api.php"


def test_built_session_sends_user_agent_and_pools_per_worker():
    s = wc._build_session(WikiConfig(user_agent="ua-test/0.1", workers=12))
    try:
        assert s.headers["User-Agent"] == "ua-test/0.1"
        adapter = s.get_adapter("https://en.wikipedia.org/w/api.php")
        assert adapter.max_retries.total == 0
        assert adapter._pool_maxsize >= 12 + 2
    finally:
        s.close()


def test_fetch_article_request_shape(fake_session, make_response, make_page):
    sess = fake_session(lambda p: make_response(payload=make_page("Go", "Go is a language.")))
    art = _client(sess, lang="de").fetch_article("Go")

    assert art.title == "Go"
    assert art.content == "Go is a language."
    (call,) = sess.calls
    assert call["url"] == "https://de.wikipedia.org/w/api.php"
    assert call["timeout"] == 7
    assert call["params"] == {
        "action": "query",
        "prop": "extracts",
        "explaintext": "1",
        "titles": "Go",
        "format": "json",
        "redirects": "1",
    }


def test_fetch_article_returns_redirect_target_title(fake_session, make_response, make_page):
    payload = make_page("Python (programming language)", "Python is...")
    payload["query"]["redirects"] = [{"from": "Python lang", "to": "Python (programming language)"}]
    sess = fake_session(lambda p: make_response(payload=payload))

    art = _client(sess).fetch_article("Python lang")
    assert art.title == "Python (programming language)"


def test_fetch_article_missing_extract_is_empty(fake_session, make_response):
    payload = {"query": {"pages": {"1": {"pageid": 1, "title": "Stub"}}}}
    sess = fake_session(lambda p: make_response(payload=payload))
    assert _client(sess).fetch_article("Stub").content == ""


def test_non_200_is_api_error(fake_session, make_response):
    sess = fake_session(lambda p: make_response(status_code=503, text="busy"))
    with pytest.raises(APIError) as ei:
        _client(sess).fetch_article("X")
    assert ei.value.status_code == 503
    assert ei.value.reason == "API returned status 503"


def test_connection_error_is_network_error(fake_session):
    sess = fake_session(lambda p: requests.ConnectionError("connection refused"))
    with pytest.raises(NetworkError, match="request error: connection refused"):
        _client(sess).fetch_article("X")


def test_timeout_is_network_error(fake_session):
    sess = fake_session(lambda p: requests.ReadTimeout("slow"))
    with pytest.raises(NetworkError, match="timeout after 7s"):
        _client(sess).fetch_article("X")


def test_invalid_json_is_parse_error(fake_session, make_response):
    sess = fake_session(lambda p: make_response(payload=None, text="<html>"))
    with pytest.raises(ParseError):
        _client(sess).fetch_article("X")


def test_non_object_json_is_parse_error(fake_session, make_response):
    sess = fake_session(lambda p: make_response(payload=["not", "an", "object"]))
    with pytest.raises(ParseError):
        _client(sess).fetch_article("X")


def test_empty_pages_is_not_found(fake_session, make_response):
    sess = fake_session(lambda p: make_response(payload={"query": {"pages": {}}}))
    with pytest.raises(NotFoundError, match="article not found: Nothing"):
        _client(sess).fetch_article("Nothing")


def test_missing_page_is_not_found(fake_session, make_response):
    payload = {"query": {"pages": {"-1": {"ns": 0, "title": "Qwxz", "missing": ""}}}}
    sess = fake_session(lambda p: make_response(payload=payload))
    with pytest.raises(NotFoundError) as ei:
        _client(sess).fetch_article("Qwxz")
    assert ei.value.title == "Qwxz"


def test_invalid_title_is_not_found(fake_session, make_response):
    payload = {"query": {"pages": {"-1": {"title": "a|b", "invalid": "", "invalidreason": "bad"}}}}
    sess = fake_session(lambda p: make_response(payload=payload))
    with pytest.raises(NotFoundError):
        _client(sess).fetch_article("a|b")


def test_error_payload_is_api_error(fake_session, make_response):
    payload = {"error": {"code": "ratelimited", "info": "You've exceeded your rate limit."}}
    sess = fake_session(lambda p: make_response(payload=payload))
    with pytest.raises(APIError) as ei:
        _client(sess).fetch_article("X")
    assert ei.value.code == "ratelimited"
    assert ei.value.reason == "API error ratelimited: You've exceeded your rate limit."


def test_error_payload_without_info(fake_session, make_response):
    sess = fake_session(lambda p: make_response(payload={"error": {"code": "badtitle", "info": ""}}))
    with pytest.raises(APIError) as ei:
        _client(sess).fetch_article("X")
    assert ei.value.reason == "API error badtitle"


def test_every_request_goes_through_limiter(fake_session, make_response, make_page):
    limiter = CountingLimiter()
    sess = fake_session(lambda p: make_response(payload=make_page("A", "a")))
    c = _client(sess, limiter=limiter)
    c.fetch_article("A")
    c.fetch_article("A")
    assert limiter.calls == 2


def _random_payload(titles):
    return {"batchcomplete": "", "query": {"random": [{"id": i, "ns": 0, "title": t} for i, t in enumerate(titles)]}}


def test_random_titles_request_shape(fake_session, make_response):
    sess = fake_session(lambda p: make_response(payload=_random_payload(["A", "B", "C"])))
    assert _client(sess).random_titles(3) == ["A", "B", "C"]
    (call,) = sess.calls
    assert call["params"] == {
        "action": "query",
        "list": "random",
        "rnnamespace": "0",
        "rnlimit": "3",
        "format": "json",
    }


def test_random_titles_deduplicates_across_batches(fake_session, make_response):
    batches = iter([["A", "B", "A"], ["B", "C"], ["D"]])
    sess = fake_session(lambda p: make_response(payload=_random_payload(next(batches))))

    got = _client(sess).random_titles(4)
    assert got == ["A", "B", "C", "D"]
    assert len(set(got)) == len(got)
    assert [c["params"]["rnlimit"] for c in sess.calls] == ["4", "2", "1"]


def test_random_titles_attempts_are_bounded(fake_session, make_response):
    sess = fake_session(lambda p: make_response(payload=_random_payload(["Same"])))
    got = _client(sess).random_titles(2)
    assert got == ["Same"]
    assert len(sess.calls) == 6


def test_random_titles_stop_on_empty_batch(fake_session, make_response):
    sess = fake_session(lambda p: make_response(payload=_random_payload([])))
    assert _client(sess).random_titles(5) == []
    assert len(sess.calls) == 1


def test_random_titles_non_positive_limit(fake_session, make_response):
    sess = fake_session(lambda p: make_response(payload=_random_payload(["A"])))
    assert _client(sess).random_titles(0) == []
    assert _client(sess).random_titles(-2) == []
    assert sess.calls == []


def test_random_batch_size_is_capped(fake_session, make_response):
    def respond(params):
        n = int(params["rnlimit"])
        start = len(sess.calls) * 1000
        return make_response(payload=_random_payload([f"T{start + i}" for i in range(n)]))

    sess = fake_session(respond)
    got = _client(sess).random_titles(600)
    assert len(got) == 600
    assert [c["params"]["rnlimit"] for c in sess.calls] == ["500", "100"]


def test_random_titles_propagates_transport_errors(fake_session):
    sess = fake_session(lambda p: requests.ConnectionError("down"))
    with pytest.raises(NetworkError):
        _client(sess).random_titles(3)


def test_null_title_falls_back_to_requested(fake_session, make_response):
    payload = {"query": {"pages": {"5": {"pageid": 5, "title": None, "extract": None}}}}
    sess = fake_session(lambda p: make_response(payload=payload))
    art = _client(sess).fetch_article("Requested")
    assert art.title == "Requested"
    assert art.content == ""


def test_body_is_streamed_and_response_closed(fake_session, make_response, make_page):
    responses = []

    def respond(params):
        r = make_response(payload=make_page("Go", "Go is a language."))
        responses.append(r)
        return r

    sess = fake_session(respond)
    _client(sess).fetch_article("Go")
    assert sess.calls[0]["stream"] is True
    assert responses[0].closed


def test_trickling_body_hits_overall_deadline(fake_session, make_response):
    chunks = [b'{"query": ', b'{"pages": ', b"{}}}"]
    sess = fake_session(lambda p: make_response(chunks=chunks, delay=0.2))
    c = WikiClient(WikiConfig(timeout=0.3), session=sess)
    with pytest.raises(NetworkError, match="timeout after 0.3s"):
        c.fetch_article("Slow")


def test_error_while_streaming_is_network_error(fake_session, make_response):
    class Broken:
        status_code = 200

        def iter_content(self, chunk_size=1, decode_unicode=False):
            yield b"{"
            raise requests.exceptions.ChunkedEncodingError("connection reset")

        def close(self):
            pass

    sess = fake_session(lambda p: Broken())
    with pytest.raises(NetworkError, match="connection reset"):
        _client(sess).fetch_article("X")
