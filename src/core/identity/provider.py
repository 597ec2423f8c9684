from typing import Optional, Protocol

from src.core.identity.models import VerifiedUser


class IdentityProvider(Protocol):
    def verify(self, access_token: str) -> Optional[VerifiedUser]: ...
