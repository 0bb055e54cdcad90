import pytest
import requests

from core.credentials import CredentialPool
from core.models import EmotionDigest, EmotionRank
from core.stats import analyze_emotions
from core.summary import SummaryRequester, build_prompt, fallback_summary


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = body
    @property
    def ok(self):
        return 200 <= self.status_code < 400
    def json(self):
        if self.body is None:
            raise ValueError("no json")
        return self.body


class FakeHTTP:
    """Scripted requests.Session: one entry (response or exception) per post."""
    def __init__(self, script):
        self.script = list(script)
        self.calls = []
    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"url": url, "key": params["key"], "json": json})
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _text(t):
    return FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": t}]}}]})


def _requester(settings, script, keys=("g1", "g2", "g3"), cooldown_ms=1000):
    pool = CredentialPool("gemini", list(keys), cooldown_ms=cooldown_ms)
    http = FakeHTTP(script)
    return SummaryRequester(pool, settings, session=http), pool, http


def test_success_on_first_key(settings, observations):
    req, pool, http = _requester(settings, [_text("A narrative.")])
    res = req.summarize_session(observations, 95)
    assert res.source == "gemini" and res.text == "A narrative."
    assert [c["key"] for c in http.calls] == ["g1"]
    assert pool.cursor == 0
    body = http.calls[0]["json"]
    assert body["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 1000}
    assert "1 minute and 35 second" in body["contents"][0]["parts"][0]["text"]


def test_quota_sweep_moves_to_next_key(settings, observations):
    req, pool, http = _requester(settings, [
        FakeResponse(429, {"error": {"code": 429}}),
        FakeResponse(400, {"error": {"status": "RESOURCE_EXHAUSTED"}}),
        _text("third key worked"),
    ])
    res = req.summarize_session(observations, 30)
    assert res.text == "third key worked"
    assert [c["key"] for c in http.calls] == ["g1", "g2", "g3"]
    assert pool.cursor == 2


def test_sweep_ignores_rotation_cooldown(settings, observations):
    req, pool, http = _requester(settings, [FakeResponse(402), FakeResponse(402), FakeResponse(402)],
                                 cooldown_ms=10_000_000)
    res = req.summarize_session(observations, 30)
    assert res.source == "fallback"
    assert [c["key"] for c in http.calls] == ["g1", "g2", "g3"]


def test_other_errors_continue_then_fall_back(settings, observations):
    req, _, http = _requester(settings, [FakeResponse(500), FakeResponse(503, {"error": {"code": 503}}),
                                         FakeResponse(400)])
    res = req.summarize_session(observations, 30)
    digest = analyze_emotions(observations)
    assert res.source == "fallback"
    assert res.text == fallback_summary(digest, 30, len(observations))
    assert len(http.calls) == 3


def test_network_error_on_non_final_key_continues(settings, observations):
    req, _, http = _requester(settings, [requests.ConnectionError("dns"), _text("ok")])
    assert req.summarize_session(observations, 30).text == "ok"
    assert [c["key"] for c in http.calls] == ["g1", "g2"]


def test_network_error_on_final_key_propagates_from_request(settings):
    req, _, _ = _requester(settings, [FakeResponse(500), requests.Timeout("slow")], keys=("g1", "g2"))
    with pytest.raises(requests.Timeout):
        req.request("prompt")


def test_empty_text_falls_back_without_trying_more_keys(settings, observations):
    req, _, http = _requester(settings, [FakeResponse(200, {"candidates": []})])
    res = req.summarize_session(observations, 30)
    assert res.source == "fallback"
    assert len(http.calls) == 1


def test_short_and_empty_sessions_skip_service(settings, observations):
    req, _, http = _requester(settings, [])
    assert req.summarize_session([], 10).text == "No emotion data collected during this session."
    short = req.summarize_session(observations[:3], 65)
    assert short.source == "skipped"
    assert "3 emotion data points collected over 01:05" in short.text
    assert http.calls == []


def test_fallback_is_deterministic_and_total():
    digest = EmotionDigest(
        avg_joy=0.4, top_emotions=[EmotionRank(name="Joy", percentage="40.0"),
                                   EmotionRank(name="Fear", percentage="10.0"),
                                   EmotionRank(name="Sadness", percentage="5.0")],
        volatility="Moderate",
    )
    a = fallback_summary(digest, 125, 80)
    assert a == fallback_summary(digest, 125, 80)
    assert "2 minute and 5 second" in a and "moderate variability" in a
    assert a.count("\n\n") == 3
    # an empty digest still produces text
    assert fallback_summary(EmotionDigest(), 0, 0)


def test_prompt_carries_digest(observations):
    digest = analyze_emotions(observations)
    prompt = build_prompt(digest, 61, len(observations))
    assert "Top emotions: Joy (50.0%)" in prompt
    assert "Average Joy: 50.0%" in prompt
    assert "Total data points: 6" in prompt
    assert digest.key_moments in prompt
