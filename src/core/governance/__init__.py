from src.core.governance.decisions import DecisionRoundService
from src.core.governance.errors import (
    GovernanceError,
    GovernanceForbiddenError,
    GovernanceNotFoundError,
    GovernanceStateError,
    GovernanceValidationError,
    VoteConflictError,
)
from src.core.governance.models import (
    DecisionRound,
    DecisionRoundCreateRequest,
    DecisionRoundOutcomeUpdate,
    DecisionTally,
    Proposal,
    ProposalCreateRequest,
    ProposalUpdateRequest,
    Vote,
    VoteCreateRequest,
)
from src.core.governance.proposals import ProposalLifecycleService
from src.core.governance.repository import GovernanceRepository
from src.core.governance.votes import VoteCastingService

__all__ = [
    "DecisionRound",
    "DecisionRoundCreateRequest",
    "DecisionRoundOutcomeUpdate",
    "DecisionRoundService",
    "DecisionTally",
    "GovernanceError",
    "GovernanceForbiddenError",
    "GovernanceNotFoundError",
    "GovernanceRepository",
    "GovernanceStateError",
    "GovernanceValidationError",
    "Proposal",
    "ProposalCreateRequest",
    "ProposalLifecycleService",
    "ProposalUpdateRequest",
    "Vote",
    "VoteCastingService",
    "VoteCreateRequest",
    "VoteConflictError",
]
