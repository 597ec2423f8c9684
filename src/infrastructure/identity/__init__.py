from src.infrastructure.identity.static import StaticTokenIdentityProvider
from src.infrastructure.identity.supabase import SupabaseIdentityProvider

__all__ = ["StaticTokenIdentityProvider", "SupabaseIdentityProvider"]
