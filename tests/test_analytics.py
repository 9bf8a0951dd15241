import json

import pytest

from oaiwrap.utils import analytics, pricing


def test_estimate_cost_is_deterministic():
    first = analytics.estimate_cost("gpt-4o-mini", 1000, 500)
    second = analytics.estimate_cost("gpt-4o-mini", 1000, 500)
    assert first == second
    assert first == pytest.approx(0.00045)


def test_estimate_cost_uses_longest_prefix():
    # dated snapshots resolve to their family, not the shorter "gpt-4o" entry
    assert analytics.estimate_cost("gpt-4o-mini-2024-07-18", 1_000_000, 0) == pytest.approx(0.15)
    assert analytics.estimate_cost("GPT-4O-2024-08-06", 1_000_000, 0) == pytest.approx(2.5)


def test_estimate_cost_unknown_model_or_usage():
    assert analytics.estimate_cost("mystery-model", 10, 10) is None
    assert analytics.estimate_cost("gpt-4o", None, 10) is None


@pytest.mark.parametrize(
    "score,flagged,expected",
    [
        (0.95, True, "Critical"),
        (0.91, False, "Critical"),
        (0.9, True, "High"),
        (0.75, False, "High"),
        (0.6, False, "Medium"),
        (0.5, True, "Low"),
        (0.3, False, "Safe"),
        (0.0, True, "Low"),
    ],
)
def test_risk_level_thresholds(score, flagged, expected):
    assert analytics.risk_level(score, flagged) == expected


def test_requires_review():
    assert analytics.requires_review("Critical", False)
    assert analytics.requires_review("High", False)
    assert analytics.requires_review("Low", True)
    assert not analytics.requires_review("Medium", False)
    assert not analytics.requires_review("Safe", False)


def test_top_category():
    assert analytics.top_category({"hate": 0.1, "violence": 0.8, "sexual": 0.2}) == ("violence", 0.8)
    assert analytics.top_category({}) == (None, 0.0)


def test_model_capabilities():
    caps = analytics.model_capabilities("gpt-4o-mini")
    assert caps == {"vision_capable": True, "reasoning_model": False, "supports_temperature": True}
    caps = analytics.model_capabilities("o3-mini")
    assert caps["reasoning_model"] and not caps["supports_temperature"]
    assert not analytics.model_capabilities("gpt-3.5-turbo")["vision_capable"]


def test_count_tokens_falls_back_when_tokenizer_unavailable(monkeypatch):
    def _boom(name):
        raise KeyError(name)

    monkeypatch.setattr(analytics.tiktoken, "encoding_for_model", _boom)
    assert analytics.count_tokens("one two three four", "whatever") == 6
    assert analytics.count_tokens("", "whatever") == 0


def test_image_and_audio_prices():
    assert pricing.lookup_image_price("dall-e-3", "1024x1024", "hd") == pytest.approx(0.08)
    assert pricing.lookup_image_price("dall-e-3", "1024x1024") == pytest.approx(0.04)
    assert pricing.lookup_image_price("gpt-image-1", "1024x1024") is None
    assert pricing.lookup_speech_price("tts-1-hd") == pytest.approx(30.0)
    assert pricing.lookup_transcription_price("whisper-1") == pytest.approx(0.006)


def test_load_pricing_overrides(tmp_path, monkeypatch):
    monkeypatch.setattr(pricing, "TOKEN_PRICING", dict(pricing.TOKEN_PRICING))
    monkeypatch.setattr(pricing, "SPEECH_PRICING", dict(pricing.SPEECH_PRICING))
    monkeypatch.setattr(pricing, "PRICING_VERSION", pricing.PRICING_VERSION)
    path = tmp_path / "prices.json"
    path.write_text(
        json.dumps(
            {
                "version": "2030-01",
                "tokens": {"Future-Model": {"input": 1.0, "output": 2.0}},
                "speech": {"tts-2": 5},
            }
        )
    )
    assert pricing.load_pricing_overrides(path) == "2030-01"
    assert pricing.PRICING_VERSION == "2030-01"
    assert analytics.estimate_cost("future-model-x", 1_000_000, 1_000_000) == pytest.approx(3.0)
    assert pricing.lookup_speech_price("tts-2") == pytest.approx(5.0)
