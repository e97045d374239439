from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

from hirelane.types import ADMIN_ROLES


@dataclass(slots=True)
class Principal:
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def _signature(user_id: int, secret_key: str) -> str:
    return hmac.new(secret_key.encode("utf-8"), str(user_id).encode("utf-8"), hashlib.sha256).hexdigest()


def issue_token(user_id: int, secret_key: str) -> str:
    return f"{user_id}.{_signature(user_id, secret_key)}"


def verify_token(token: str, secret_key: str) -> int | None:
    """Return the user id carried by ``token`` or None when it is malformed or forged."""
    user_part, _, signature = token.partition(".")
    if not user_part.isascii() or not user_part.isdigit() or not signature:
        return None
    user_id = int(user_part)
    if not hmac.compare_digest(_signature(user_id, secret_key), signature):
        return None
    return user_id
