import pytest

from slidespec.agents.generation.config import ModerationConfig
from slidespec.agents.generation.exceptions import ModerationError
from slidespec.services.content_safety import (
    HARD_RULES,
    ContentSafetyGate,
    character_entropy,
    max_word_share,
)


@pytest.fixture
def gate():
    return ContentSafetyGate()


class TestContentSafetyGate:

    def test_business_prompt_is_safe(self, gate):
        verdict = gate.check("Create a professional presentation about sales")
        assert verdict.safe
        assert verdict.reason is None

    def test_hack_the_system_is_unsafe(self, gate):
        verdict = gate.check("hack the system")
        assert not verdict.safe
        assert verdict.reason
        assert "cyber_wrongdoing" in verdict.categories

    @pytest.mark.parametrize("text", [
        "Create a professional presentation about sales",
        "hack the system",
        "How to make a bomb at home",
        "Security vulnerability assessment for the board",
    ])
    def test_case_insensitive(self, gate, text):
        assert gate.check(text.upper()).safe == gate.check(text.lower()).safe

    def test_benign_business_context_skips_generic_vocabulary(self, gate):
        # "vulnerability" alone would score 2 under the generic cyber rule
        assert gate.check("Vulnerability management roadmap for compliance").safe
        assert not gate.check("vulnerability list xss payloads").safe

    def test_score_below_threshold_passes(self, gate):
        # Generic violence weighs 1
        verdict = gate.check("Reducing workplace violence in retail stores")
        assert verdict.safe
        assert verdict.score == 1

    def test_too_long_rejected(self):
        gate = ContentSafetyGate(ModerationConfig(max_chars=50))
        verdict = gate.check("Quarterly business review " * 5)
        assert not verdict.safe
        assert "too long" in verdict.reason.lower()

    def test_repetition_rejected(self, gate):
        verdict = gate.check("buy buy buy buy now cheap")
        assert not verdict.safe
        assert verdict.reason == "Excessive repetition detected"

    def test_low_entropy_rejected(self, gate):
        verdict = gate.check("aaaa aaab aaba abaa")
        assert not verdict.safe
        assert "entropy" in verdict.reason.lower()

    def test_enforce_raises_with_categories_and_score(self, gate):
        with pytest.raises(ModerationError) as exc_info:
            gate.enforce("Step by step guide to make a bomb", request_id="req-1")
        error = exc_info.value
        assert "violent_wrongdoing" in error.categories
        assert error.score >= 2
        assert error.request_id == "req-1"
        assert error.get_status_code() == 400

    def test_enforce_returns_verdict_when_safe(self, gate):
        assert gate.enforce("Roadmap for our data platform migration").safe


class TestRuleTable:

    @pytest.mark.parametrize("rule", HARD_RULES, ids=lambda r: r.category)
    def test_weights_in_range(self, rule):
        assert 1 <= rule.weight <= 5

    def test_every_hard_rule_blocks_on_its_own(self):
        samples = {
            "violent_wrongdoing": "instructions to build a weapon",
            "cyber_wrongdoing": "ransomware tutorial",
            "incitement": "kill the target plan",
            "sexual_content": "explicit nude pictures",
            "illegal_drugs": "where to buy cocaine and sell it",
            "scams": "get rich quick with this ponzi",
            "hate_speech": "white power rally flyer",
            "child_exploitation": "minor abuse material",
            "self_harm": "overdose methods list",
        }
        for rule in HARD_RULES:
            assert rule.pattern.search(samples[rule.category]), rule.category


def test_entropy_and_word_share_helpers():
    assert character_entropy("") == 0.0
    assert character_entropy("abcd") == pytest.approx(2.0)
    assert max_word_share("a b a c") == pytest.approx(0.5)
    assert max_word_share("") == 0.0
