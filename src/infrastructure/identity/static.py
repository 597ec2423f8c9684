import json
from typing import Optional

from pydantic import ValidationError

from src.core.identity.models import VerifiedUser


class StaticTokenIdentityProvider:
    """Fixed token table for local runs, e.g. ``{"dev-token": {"id": "...", "email": "..."}}``."""

    def __init__(self, *, tokens: dict[str, VerifiedUser]) -> None:
        self._tokens = dict(tokens)

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "StaticTokenIdentityProvider":
        if raw is None or not raw.strip():
            return cls(tokens={})
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RuntimeError("AUTH_STATIC_TOKENS_INVALID") from exc
        if not isinstance(parsed, dict):
            raise RuntimeError("AUTH_STATIC_TOKENS_INVALID")
        try:
            tokens = {token: VerifiedUser.model_validate(user) for token, user in parsed.items()}
        except ValidationError as exc:
            raise RuntimeError("AUTH_STATIC_TOKENS_INVALID") from exc
        return cls(tokens=tokens)

    def verify(self, access_token: str) -> Optional[VerifiedUser]:
        user = self._tokens.get(access_token)
        return user.model_copy() if user is not None else None
