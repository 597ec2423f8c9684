from src.core.identity.models import CallerIdentity, VerifiedUser
from src.core.identity.provider import IdentityProvider
from src.core.identity.resolver import IdentityResolver

__all__ = ["CallerIdentity", "IdentityProvider", "IdentityResolver", "VerifiedUser"]
