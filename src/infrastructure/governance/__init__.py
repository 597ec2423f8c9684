from src.infrastructure.governance.in_memory import InMemoryGovernanceRepository
from src.infrastructure.governance.postgres import PostgresGovernanceRepository

__all__ = ["InMemoryGovernanceRepository", "PostgresGovernanceRepository"]
