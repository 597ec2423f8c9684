import logging
from datetime import datetime, timezone
from typing import Any, Optional

from src.core.governance.errors import (
    GovernanceForbiddenError,
    GovernanceNotFoundError,
    GovernanceStateError,
    GovernanceValidationError,
)
from src.core.governance.ids import is_valid_uuid, new_record_id
from src.core.governance.models import (
    DecisionRound,
    DecisionRoundOutcomeUpdate,
    DecisionRoundRecord,
    DecisionTally,
)
from src.core.governance.repository import GovernanceRepository

logger = logging.getLogger(__name__)


class DecisionRoundService:
    def __init__(self, *, repository: GovernanceRepository) -> None:
        self._repository = repository

    def get_or_create_round(self, *, proposal_id, caller_id: str) -> tuple[DecisionRound, bool]:
        return self._allocate(proposal_id=proposal_id, caller_id=caller_id, reuse_latest=True)

    def create_round(self, *, proposal_id, caller_id: str) -> DecisionRound:
        decision_round, _ = self._allocate(
            proposal_id=proposal_id, caller_id=caller_id, reuse_latest=False
        )
        return decision_round

    def get_round(self, *, round_id: str) -> DecisionRound:
        return to_decision_round(self._load_round(round_id))

    def list_rounds(self, *, proposal_id: Optional[str]) -> list[DecisionRound]:
        if proposal_id is not None and not is_valid_uuid(proposal_id):
            raise GovernanceValidationError("INVALID_PROPOSAL_ID: invalid proposal ID format")
        rows = self._repository.list_rounds(proposal_id=proposal_id)
        return [to_decision_round(row) for row in rows]

    def update_outcome(
        self,
        *,
        round_id: str,
        payload: DecisionRoundOutcomeUpdate,
        caller_id: str,
    ) -> DecisionRound:
        decision_round = self._load_round(round_id)
        proposal = self._repository.get_proposal(proposal_id=decision_round.proposal_id)
        if proposal is None:
            raise GovernanceNotFoundError(
                "PROPOSAL_NOT_FOUND: associated proposal does not exist"
            )
        if proposal.created_by != caller_id:
            raise GovernanceForbiddenError(
                "DECISION_FORBIDDEN: only the proposal creator can update decisions"
            )

        updates: dict[str, Any] = payload.model_dump(exclude_unset=True)
        if "percent_approval" in updates:
            _validate_percent_approval(updates["percent_approval"])
        if "vote_links" in updates:
            updates["vote_links"] = _validate_vote_links(updates["vote_links"])

        if updates:
            updated = self._repository.update_round_outcome(round_id=round_id, changes=updates)
            if updated is None:
                raise GovernanceNotFoundError("DECISION_NOT_FOUND: decision does not exist")
            decision_round = updated
        logger.info(
            "decision.outcome_updated",
            extra={"extra_fields": {"decision_id": round_id, "fields": sorted(updates)}},
        )
        return to_decision_round(decision_round)

    def tally(self, *, round_id: str) -> DecisionTally:
        self._load_round(round_id)
        votes = self._repository.list_votes(decision_id=round_id)
        counts = {"approve": 0, "deny": 0, "abstain": 0}
        for vote in votes:
            counts[vote.decision] += 1
        decisive = counts["approve"] + counts["deny"]
        return DecisionTally(
            decision_id=round_id,
            approve=counts["approve"],
            deny=counts["deny"],
            abstain=counts["abstain"],
            total=len(votes),
            percent_approval=(
                round(counts["approve"] * 100 / decisive, 2) if decisive else None
            ),
        )

    def _allocate(
        self, *, proposal_id, caller_id: str, reuse_latest: bool
    ) -> tuple[DecisionRound, bool]:
        if not is_valid_uuid(proposal_id):
            raise GovernanceValidationError("INVALID_PROPOSAL_ID: valid proposal ID is required")
        proposal = self._repository.get_proposal(proposal_id=proposal_id)
        if proposal is None:
            raise GovernanceNotFoundError("PROPOSAL_NOT_FOUND: proposal does not exist")
        if proposal.status != "open":
            raise GovernanceStateError(
                "PROPOSAL_CLOSED: cannot create decision for a closed proposal"
            )

        allocation = self._repository.allocate_round(
            proposal_id=proposal_id,
            round_id=new_record_id(),
            created_at=_utc_now(),
            reuse_latest=reuse_latest,
        )
        if allocation is None:
            # closed between the status read and the allocation
            raise GovernanceStateError(
                "PROPOSAL_CLOSED: cannot create decision for a closed proposal"
            )
        if allocation.created:
            logger.info(
                "decision.created",
                extra={
                    "extra_fields": {
                        "decision_id": allocation.round.id,
                        "proposal_id": proposal_id,
                        "decision_point": allocation.round.decision_point,
                        "requested_by": caller_id,
                    }
                },
            )
        return to_decision_round(allocation.round), allocation.created

    def _load_round(self, round_id: str) -> DecisionRoundRecord:
        if not is_valid_uuid(round_id):
            raise GovernanceValidationError("INVALID_DECISION_ID: invalid decision ID format")
        decision_round = self._repository.get_round(round_id=round_id)
        if decision_round is None:
            raise GovernanceNotFoundError("DECISION_NOT_FOUND: decision does not exist")
        return decision_round


def to_decision_round(decision_round: DecisionRoundRecord) -> DecisionRound:
    return DecisionRound(
        id=decision_round.id,
        proposal_id=decision_round.proposal_id,
        decision_point=decision_round.decision_point,
        success=decision_round.success,
        percent_approval=decision_round.percent_approval,
        vote_links=list(decision_round.vote_links),
        created_at=decision_round.created_at.isoformat(),
    )


def _validate_percent_approval(value: Optional[float]) -> None:
    if value is not None and not 0 <= value <= 100:
        raise GovernanceValidationError(
            "INVALID_PERCENT_APPROVAL: percent_approval must be between 0 and 100"
        )


def _validate_vote_links(value: Optional[list[str]]) -> list[str]:
    links = value or []
    if not all(is_valid_uuid(link) for link in links):
        raise GovernanceValidationError("INVALID_VOTE_LINKS: vote_links must contain vote IDs")
    return list(links)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
