import logging
from datetime import datetime, timezone
from typing import Optional

from src.core.governance.models import UserRecord
from src.core.governance.repository import GovernanceRepository
from src.core.identity.models import CallerIdentity
from src.core.identity.provider import IdentityProvider

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Turns request credentials into a verified caller identity.

    Verification is delegated to the identity provider. The first successful
    authentication of a user creates its row in the users collection; later
    ones refresh the stored username and email with whatever the provider
    reports, keeping stored values the provider leaves empty.
    """

    def __init__(self, *, provider: IdentityProvider, repository: GovernanceRepository) -> None:
        self._provider = provider
        self._repository = repository

    def resolve(self, access_token: Optional[str]) -> Optional[CallerIdentity]:
        if not access_token:
            return None
        verified = self._provider.verify(access_token)
        if verified is None:
            logger.info("identity.rejected")
            return None
        user = self._repository.ensure_user(
            UserRecord(
                id=verified.id,
                username=verified.username,
                email=verified.email,
                created_at=datetime.now(timezone.utc),
            )
        )
        return CallerIdentity(
            id=verified.id,
            email=verified.email or user.email,
            username=user.username,
        )
