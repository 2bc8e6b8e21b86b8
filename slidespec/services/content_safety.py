"""
Content safety gate.

Scores sanitized text against an ordered table of categorized patterns. Rules are
data: each has a category, a pattern and a severity weight, so a rule can be
tested or added without touching the scoring loop.
"""

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Tuple

from slidespec.agents.generation.config import ModerationConfig
from slidespec.agents.generation.exceptions import ModerationError
from slidespec.setup_logging_optimized import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SafetyRule:
    category: str
    pattern: Pattern
    weight: int


@dataclass
class SafetyVerdict:
    safe: bool
    reason: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    score: int = 0


def _rule(category: str, pattern: str, weight: int) -> SafetyRule:
    return SafetyRule(category, re.compile(pattern, re.IGNORECASE), weight)


BENIGN_BUSINESS_CONTEXT = re.compile(
    r"\b(strategy|market|roadmap|policy|regulation|regulatory|compliance|report|analysis|"
    r"architecture|infrastructure|risk|controls|governance|kpi|presentation|slide|deck|test|"
    r"testing|assessment|business|finance|consulting)\b",
    re.IGNORECASE,
)

# Vocabulary that is fine inside a business deck but risky on its own
SENSITIVE_BUSINESS_VOCABULARY = re.compile(
    r"\b(crypto|bitcoin|nft|blockchain|penetration test|security|vulnerability|exploit|hack)",
    re.IGNORECASE,
)

HARD_RULES: Tuple[SafetyRule, ...] = (
    _rule("violent_wrongdoing",
          r"\b(build|make|how to|instructions?|guide|recipe)\b.{0,40}\b(bomb|weapon|explosive|molotov|knife|gun|poison|bioweapon|nuclear)", 5),
    _rule("cyber_wrongdoing",
          r"\b(hack|zero-day|exploit|ransomware|botnet|ddos|bypass|backdoor|phish|malware|virus|trojan)\w*\b.{0,40}\b(guide|how|tutorial|steps?|system|code|script)\b", 5),
    _rule("incitement",
          r"\b(kill|murder|assault|shoot|stab|bomb|terrorize|threaten)\b.{0,40}\b(how|plan|guide|tips?|target)\b", 5),
    _rule("sexual_content",
          r"\b(porn|xxx|nsfw|explicit|nude|sexual|erotic|fetish|incest|bestiality)\b", 4),
    _rule("illegal_drugs",
          r"\b(cocaine|heroin|meth|mdma|lsd|fentanyl|opioid|methamphetamine|ecstasy)\b.{0,40}\b(make|produce|manufacture|synthesis|buy|sell)\b", 4),
    _rule("scams",
          r"\b(get rich quick|double your (money|btc)|seed phrase|giveaway|airdrop claim|ponzi|pyramid|fake invoice|fraud|scam script)\b", 4),
    _rule("hate_speech",
          r"\b(racist|white power|kkk|nazi|kill \w+|gas \w+|genocide|ethnic cleansing|slur|discriminate)\b", 5),
    _rule("child_exploitation",
          r"\b(child|minor|kid|teen)s?\b.{0,40}\b(porn|abuse|exploit|traffic|sextort|groom)", 5),
    _rule("self_harm",
          r"\b(suicide|self-harm|cut myself|overdose|how to die)\b", 5),
)

# Generic vocabulary, skipped when a benign business context explains it
SOFT_RULES: Tuple[SafetyRule, ...] = (
    _rule("violence", r"\b(violence|weapon|bomb|terror|assault|murder)\b", 1),
    _rule("cyber", r"\b(hack|exploit|vulnerability|xss|sql injection|malware|virus)", 2),
    _rule("spam", r"\b(spam|scam|phishing|fraud|fake|forge)\b", 2),
)


def character_entropy(text: str) -> float:
    """Shannon entropy (bits) of the character distribution."""
    if not text:
        return 0.0
    counts = Counter(text)
    total = len(text)
    return -sum((n / total) * math.log2(n / total) for n in counts.values())


def max_word_share(text: str) -> float:
    """Frequency of the most common word as a share of all words."""
    words = text.lower().split()
    if not words:
        return 0.0
    return Counter(words).most_common(1)[0][1] / len(words)


def is_benign_business_context(text: str) -> bool:
    return bool(SENSITIVE_BUSINESS_VOCABULARY.search(text) and BENIGN_BUSINESS_CONTEXT.search(text))


class ContentSafetyGate:
    """Pure, deterministic scorer. check() never raises; enforce() does."""

    def __init__(self, config: Optional[ModerationConfig] = None):
        self.config = config or ModerationConfig()

    def _active_rules(self, text: str) -> Tuple[SafetyRule, ...]:
        if is_benign_business_context(text):
            return HARD_RULES
        return HARD_RULES + SOFT_RULES

    def _heuristics(self, text: str) -> Optional[SafetyVerdict]:
        if len(text) > self.config.max_chars:
            return SafetyVerdict(
                safe=False,
                reason=f"Prompt too long (max {self.config.max_chars} chars)",
                categories=["abuse"],
            )
        if len(text.split()) > 1 and max_word_share(text) > self.config.max_word_repetition_ratio:
            return SafetyVerdict(safe=False, reason="Excessive repetition detected", categories=["spam"])
        if character_entropy(text) < self.config.min_entropy_bits:
            return SafetyVerdict(safe=False, reason="Low content entropy (possible spam)", categories=["spam"])
        return None

    def check(self, text: str) -> SafetyVerdict:
        heuristic = self._heuristics(text)
        if heuristic is not None:
            return heuristic

        score = 0
        categories: List[str] = []
        for rule in self._active_rules(text):
            if rule.pattern.search(text):
                score += rule.weight
                categories.append(rule.category)

        if score >= self.config.block_score:
            return SafetyVerdict(
                safe=False,
                reason="Content may be unsafe or disallowed",
                categories=categories,
                score=score,
            )
        return SafetyVerdict(safe=True, categories=categories, score=score)

    def enforce(self, text: str, request_id: Optional[str] = None) -> SafetyVerdict:
        """Raise ModerationError for unsafe text, otherwise return the verdict."""
        verdict = self.check(text)
        if not verdict.safe:
            logger.warning(
                f"[{request_id}] Moderation blocked prompt: categories={verdict.categories} "
                f"score={verdict.score} reason={verdict.reason}"
            )
            raise ModerationError(
                verdict.reason or "Content may be unsafe or disallowed",
                categories=verdict.categories,
                score=verdict.score,
                request_id=request_id,
            )
        return verdict
