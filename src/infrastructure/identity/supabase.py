import logging
from typing import Optional

import httpx

from src.core.identity.models import VerifiedUser

logger = logging.getLogger(__name__)


class SupabaseIdentityProvider:
    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not base_url:
            raise RuntimeError("AUTH_PROVIDER_URL_REQUIRED")
        if not api_key:
            raise RuntimeError("AUTH_PROVIDER_API_KEY_REQUIRED")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    def verify(self, access_token: str) -> Optional[VerifiedUser]:
        try:
            with httpx.Client(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = client.get(
                    "/auth/v1/user",
                    headers={
                        "apikey": self._api_key,
                        "Authorization": f"Bearer {access_token}",
                    },
                )
        except httpx.HTTPError as exc:
            logger.warning(
                "identity.provider_unavailable",
                extra={"extra_fields": {"error": type(exc).__name__}},
            )
            return None
        if response.status_code != 200:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        return _to_verified_user(body)


def _to_verified_user(body) -> Optional[VerifiedUser]:
    if not isinstance(body, dict) or not isinstance(body.get("id"), str) or not body["id"]:
        return None
    metadata = body.get("user_metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    username = metadata.get("username") or metadata.get("user_name")
    return VerifiedUser(
        id=body["id"],
        email=body.get("email") if isinstance(body.get("email"), str) else None,
        username=username if isinstance(username, str) else None,
    )
