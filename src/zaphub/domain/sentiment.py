"""Keyword sentiment tagging for inbound WhatsApp text.

Deterministic, NO LLM. Keywords are Portuguese, matched as lower-case
substrings ("contains", not word boundaries), so "problemas" counts as
"problema".

Two flavours:
- sentiment_tag(): the tag stored with every ingested message.
- sentiment_score(): per-word +/-0.3 score, used where a score and
  confidence are shown (chat overviews, message history).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Sentiment = Literal["positive", "negative", "neutral"]

SENTIMENTS: tuple[Sentiment, ...] = ("positive", "negative", "neutral")

POSITIVE_KEYWORDS: tuple[str, ...] = (
    "obrigado",
    "obrigada",
    "ótimo",
    "ótima",
    "excelente",
    "bom",
    "boa",
    "perfeito",
    "adorei",
    "amei",
    "parabéns",
    "sucesso",
    "feliz",
    "satisfeito",
    "maravilhoso",
    "fantástico",
    "incrível",
    "grato",
    "grata",
)

NEGATIVE_KEYWORDS: tuple[str, ...] = (
    "ruim",
    "péssimo",
    "problema",
    "erro",
    "falha",
    "defeito",
    "reclamação",
    "insatisfeito",
    "cancelar",
    "devolver",
    "horrível",
    "terrível",
    "decepcionado",
    "frustrado",
    "raiva",
    "irritado",
    "chateado",
    "triste",
    "urgente",
)

# Per matched word in sentiment_score()
WORD_WEIGHT = 0.3
# |score| above this leaves neutral
SCORE_THRESHOLD = 0.2


def _count_present(text: str, keywords: tuple[str, ...]) -> int:
    return sum(1 for word in keywords if word in text)


def sentiment_tag(text: str | None) -> Sentiment:
    """Tag text as positive, negative or neutral.

    Each keyword counts once if present anywhere in the lower-cased text;
    the side with more keywords wins, ties are neutral.

    >>> sentiment_tag("Ótimo, obrigado!")
    'positive'
    >>> sentiment_tag("Problema grave, erro crítico")
    'negative'
    >>> sentiment_tag("")
    'neutral'
    """
    if not text:
        return "neutral"

    lowered = text.casefold()
    positive = _count_present(lowered, POSITIVE_KEYWORDS)
    negative = _count_present(lowered, NEGATIVE_KEYWORDS)

    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


@dataclass(frozen=True)
class SentimentScore:
    """Scored sentiment. confidence is |score| + 0.5 and can exceed 1."""

    sentiment: Sentiment
    score: float
    confidence: float
    positive_words: int
    negative_words: int
    total_words: int

    def as_dict(self) -> dict:
        return {
            "sentiment": self.sentiment,
            "score": self.score,
            "confidence": self.confidence,
            "details": {
                "positiveWords": self.positive_words,
                "negativeWords": self.negative_words,
                "totalWords": self.total_words,
            },
        }


def sentiment_score(text: str | None) -> SentimentScore:
    """Score text in [-1, 1] by adding 0.3 per positive word, subtracting per negative."""
    words = (text or "").casefold().split()
    score = 0.0
    positive = 0
    negative = 0

    for word in words:
        if any(kw in word for kw in POSITIVE_KEYWORDS):
            score += WORD_WEIGHT
            positive += 1
        if any(kw in word for kw in NEGATIVE_KEYWORDS):
            score -= WORD_WEIGHT
            negative += 1

    score = round(max(-1.0, min(1.0, score)), 4)

    if score > SCORE_THRESHOLD:
        sentiment: Sentiment = "positive"
    elif score < -SCORE_THRESHOLD:
        sentiment = "negative"
    else:
        sentiment = "neutral"

    return SentimentScore(
        sentiment=sentiment,
        score=score,
        confidence=round(abs(score) + 0.5, 4),
        positive_words=positive,
        negative_words=negative,
        total_words=len(words),
    )
