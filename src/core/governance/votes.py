import logging
from datetime import datetime, timezone
from typing import Optional

from src.core.governance.errors import (
    GovernanceNotFoundError,
    GovernanceStateError,
    GovernanceValidationError,
    VoteConflictError,
)
from src.core.governance.ids import is_valid_uuid, new_record_id
from src.core.governance.models import (
    VOTE_DECISIONS,
    UserRecord,
    Vote,
    VoteCaster,
    VoteRecord,
)
from src.core.governance.repository import GovernanceRepository

logger = logging.getLogger(__name__)


class VoteCastingService:
    def __init__(self, *, repository: GovernanceRepository) -> None:
        self._repository = repository

    def cast_vote(
        self,
        *,
        decision_id,
        decision,
        caller_id: str,
        caller_username: Optional[str] = None,
        voting_logic: Optional[str] = None,
        agent_vote: bool = False,
    ) -> Vote:
        if not is_valid_uuid(decision_id):
            raise GovernanceValidationError("INVALID_DECISION_ID: valid decision ID is required")
        if decision not in VOTE_DECISIONS:
            raise GovernanceValidationError(
                "INVALID_DECISION: decision must be one of: approve, deny, abstain"
            )
        decision_round = self._repository.get_round(round_id=decision_id)
        if decision_round is None:
            raise GovernanceNotFoundError("DECISION_NOT_FOUND: decision does not exist")
        proposal = self._repository.get_proposal(proposal_id=decision_round.proposal_id)
        if proposal is None:
            raise GovernanceNotFoundError(
                "PROPOSAL_NOT_FOUND: associated proposal does not exist"
            )
        if proposal.status != "open":
            raise GovernanceStateError("PROPOSAL_CLOSED: cannot vote on a closed proposal")
        if self._repository.find_vote(decision_id=decision_id, user_id=caller_id) is not None:
            raise VoteConflictError("ALREADY_VOTED: you have already voted on this decision")

        vote = VoteRecord(
            id=new_record_id(),
            decision_id=decision_id,
            user_id=caller_id,
            username=caller_username,
            decision=decision,
            voting_logic=(voting_logic or "").strip() or None,
            created_at=_utc_now(),
            agent_vote=agent_vote,
        )
        if not self._repository.record_vote(vote):
            raise VoteConflictError("ALREADY_VOTED: you have already voted on this decision")
        logger.info(
            "vote.cast",
            extra={
                "extra_fields": {
                    "vote_id": vote.id,
                    "decision_id": decision_id,
                    "decision": decision,
                    "agent_vote": agent_vote,
                }
            },
        )
        return to_vote(vote)

    def list_votes(self, *, decision_id) -> list[Vote]:
        """Votes of one round, oldest first, joined with the caster's profile."""
        if not is_valid_uuid(decision_id):
            raise GovernanceValidationError("INVALID_DECISION_ID: valid decision ID is required")
        votes = self._repository.list_votes(decision_id=decision_id)
        users = self._repository.get_users(user_ids=[vote.user_id for vote in votes])
        return [to_vote(vote, caster=users.get(vote.user_id)) for vote in votes]


def to_vote(vote: VoteRecord, caster: Optional[UserRecord] = None) -> Vote:
    return Vote(
        id=vote.id,
        decision_id=vote.decision_id,
        user_id=vote.user_id,
        username=vote.username,
        decision=vote.decision,
        voting_logic=vote.voting_logic,
        created_at=vote.created_at.isoformat(),
        agent_vote=vote.agent_vote,
        users=(
            VoteCaster(username=caster.username, email=caster.email)
            if caster is not None
            else None
        ),
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
