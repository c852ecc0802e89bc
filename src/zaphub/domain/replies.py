"""Canned reply suggestions keyed by sentiment.

Stands in for a text-generation collaborator: picks one of a few fixed
replies for the message's sentiment.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from zaphub.domain.sentiment import Sentiment

REPLIES: dict[Sentiment, tuple[str, ...]] = {
    "positive": (
        "Que bom saber que você está satisfeito! 😊",
        "Fico feliz em ajudar! Como posso continuar te auxiliando?",
        "Obrigado pelo feedback positivo! Estou aqui para o que precisar.",
    ),
    "negative": (
        "Entendo sua preocupação. Vou fazer o possível para resolver isso.",
        "Lamento que tenha tido essa experiência. Como posso melhorar a situação?",
        "Peço desculpas pelo inconveniente. Vamos resolver isso juntos.",
    ),
    "neutral": (
        "Olá! Como posso ajudá-lo hoje?",
        "Estou aqui para auxiliar. O que você precisa?",
        "Oi! Em que posso ser útil?",
    ),
}

# Stored with every suggestion; canned replies carry a fixed confidence
SUGGESTION_CONFIDENCE = 0.8


@dataclass(frozen=True)
class SuggestedReply:
    text: str
    confidence: float


def suggest_reply(sentiment: Sentiment, rng: random.Random | None = None) -> SuggestedReply:
    options = REPLIES.get(sentiment, REPLIES["neutral"])
    return SuggestedReply(text=(rng or random).choice(options), confidence=SUGGESTION_CONFIDENCE)
