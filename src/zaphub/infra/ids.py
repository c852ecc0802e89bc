"""Identifier generation.

All ids are "<prefix>_<epoch ms>[_<suffix>]". Webhook ids use the owning
client id as prefix and no suffix, so the client can be recovered from the
id alone (see client_id_from_webhook_id).
"""

import random
import string

from zaphub.infra.time import epoch_ms

ID_DELIMITER = "_"

_ALPHABET = string.ascii_lowercase + string.digits


def random_suffix(length: int = 9, rng: random.Random | None = None) -> str:
    rng = rng or random
    return "".join(rng.choice(_ALPHABET) for _ in range(length))


def message_id() -> str:
    return f"msg_{epoch_ms()}_{random_suffix()}"


def suggestion_id() -> str:
    return f"sug_{epoch_ms()}_{random_suffix()}"


def notification_id() -> str:
    return f"notif_{epoch_ms()}_{random_suffix()}"


def session_id(rng: random.Random | None = None, now_ms: int | None = None) -> str:
    return f"session_{now_ms if now_ms is not None else epoch_ms()}_{random_suffix(6, rng)}"


def webhook_id(client_id: str, now_ms: int | None = None) -> str:
    return f"{client_id}{ID_DELIMITER}{now_ms if now_ms is not None else epoch_ms()}"


def client_id_from_webhook_id(webhook_id: str) -> str:
    """Prefix up to the first delimiter.

    A client id that itself contains the delimiter cannot be recovered; such
    registrations are rejected at register time.
    """
    return webhook_id.split(ID_DELIMITER, 1)[0]
