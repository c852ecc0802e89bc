"""WhatsApp companion - process-wide auto-reply toggle.

One Companion per process: active flag, personality, reply delay. Replies
are canned per personality and keyword; a text-generation backend is out
of scope.
"""

from __future__ import annotations

import asyncio
import random
import threading
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Personality:
    id: str
    name: str
    description: str
    avatar: str
    traits: tuple[str, ...]


PERSONALITIES: tuple[Personality, ...] = (
    Personality(
        id="luzia",
        name="Luzia",
        description="Assistente profissional e eficiente para WhatsApp",
        avatar="🤖",
        traits=("Profissional", "Eficiente", "Objetiva", "Prestativa"),
    ),
    Personality(
        id="professional",
        name="Profissional",
        description="Focado em negócios e produtividade",
        avatar="💼",
        traits=("Formal", "Produtivo", "Empresarial", "Eficiente"),
    ),
    Personality(
        id="casual",
        name="Casual",
        description="Amigável e descontraído",
        avatar="😊",
        traits=("Amigável", "Descontraído", "Divertido", "Casual"),
    ),
)

_BY_ID = {p.id: p for p in PERSONALITIES}

DEFAULT_PERSONALITY = "luzia"
DEFAULT_DELAY_MS = 1000
MAX_DELAY_MS = 60000

# (keywords, replies) checked in order; the entry with no keywords is the fallback
_RESPONSES: dict[str, tuple[tuple[tuple[str, ...], tuple[str, ...]], ...]] = {
    "luzia": (
        (("olá", "oi"), (
            "Olá! Como posso ajudá-lo hoje?",
            "Oi! Em que posso ser útil?",
            "Olá! Estou aqui para ajudar.",
        )),
        (("ajuda",), (
            "Claro! Posso ajudar com automação do WhatsApp, gerenciamento de mensagens e muito mais.",
            "Estou aqui para ajudar! O que você precisa?",
        )),
        ((), (
            "Entendi. Como posso ajudar com isso?",
            "Compreendo. Em que posso ser útil?",
        )),
    ),
    "professional": (
        (("reunião", "meeting"), (
            "Posso ajudar a agendar reuniões e enviar lembretes automáticos.",
            "Vou organizar sua agenda de reuniões de forma eficiente.",
        )),
        ((), (
            "Entendido. Vou processar sua solicitação de forma eficiente.",
            "Recebido. Implementando a solução mais adequada.",
        )),
    ),
    "casual": (
        (("oi", "olá"), (
            "Oi! Tudo bem? 😊",
            "Olá! Como você está hoje? 🌟",
        )),
        ((), (
            "Legal! Vamos resolver isso juntos! 🚀",
            "Show! Vou te ajudar com isso! 💪",
        )),
    ),
}


class CompanionError(ValueError):
    """Invalid personality or delay."""

    pass


def personality_info(personality_id: str) -> dict:
    p = _BY_ID[personality_id]
    info = asdict(p)
    info["traits"] = list(p.traits)
    return info


def parse_delay_ms(value: object) -> int:
    """Integer milliseconds in [0, MAX_DELAY_MS], from an int or a digit string.

    Raises:
        CompanionError: If value is out of range, fractional or not numeric.
    """
    if isinstance(value, bool):
        raise CompanionError("delay must be a non-negative integer")
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        raise CompanionError("delay must be a non-negative integer")
    if value > MAX_DELAY_MS:
        raise CompanionError(f"delay must be between 0 and {MAX_DELAY_MS} ms")
    return value


class Companion:
    """Auto-reply toggle. Thread-safe; shared by every request."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._active = False
        self._personality = DEFAULT_PERSONALITY
        self._delay_ms = DEFAULT_DELAY_MS
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def personality(self) -> str:
        return self._personality

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    def activate(self, personality_id: str | None = None) -> None:
        if personality_id:
            self.set_personality(personality_id)
        with self._lock:
            self._active = True

    def deactivate(self) -> None:
        with self._lock:
            self._active = False

    def set_personality(self, personality_id: str) -> None:
        if personality_id not in _BY_ID:
            raise CompanionError(f"Unknown personality: {personality_id}")
        with self._lock:
            self._personality = personality_id

    def set_delay(self, value: object) -> int:
        delay = parse_delay_ms(value)
        with self._lock:
            self._delay_ms = delay
        return delay

    def greeting(self) -> str:
        return f"{_BY_ID[self._personality].avatar} Olá! Sou {_BY_ID[self._personality].name}."

    def reply_for(self, text: str) -> str:
        """Canned reply for text under the current personality (no delay)."""
        lowered = (text or "").casefold()
        for keywords, replies in _RESPONSES[self._personality]:
            if not keywords or any(k in lowered for k in keywords):
                return self._rng.choice(replies)
        return "Como posso ajudar?"

    async def process_message(self, text: str) -> str | None:
        """Reply after the configured delay, or None while inactive."""
        if not self._active:
            return None
        reply = self.reply_for(text)
        if self._delay_ms:
            await asyncio.sleep(self._delay_ms / 1000)
        return reply

    def status(self) -> dict:
        return {
            "isActive": self._active,
            "personality": personality_info(self._personality),
            "delayMs": self._delay_ms,
            "personalities": [personality_info(p.id) for p in PERSONALITIES],
        }
