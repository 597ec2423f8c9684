from copy import deepcopy
from datetime import datetime
from threading import Lock
from typing import Any, Optional

from src.core.governance.models import (
    OUTCOME_COLUMNS,
    DecisionRoundAllocation,
    DecisionRoundRecord,
    ProposalRecord,
    ProposalStatus,
    UserRecord,
    VoteRecord,
)
from src.core.governance.repository import GovernanceRepository


class InMemoryGovernanceRepository(GovernanceRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._users: dict[str, UserRecord] = {}
        self._proposals: dict[str, ProposalRecord] = {}
        self._rounds: dict[str, DecisionRoundRecord] = {}
        self._votes: dict[str, VoteRecord] = {}
        self._vote_by_caster: dict[tuple[str, str], str] = {}

    def ensure_user(self, user: UserRecord) -> UserRecord:
        with self._lock:
            existing = self._users.setdefault(user.id, deepcopy(user))
            if user.username is not None:
                existing.username = user.username
            if user.email is not None:
                existing.email = user.email
            return deepcopy(existing)

    def get_users(self, *, user_ids: list[str]) -> dict[str, UserRecord]:
        with self._lock:
            return {
                user_id: deepcopy(self._users[user_id])
                for user_id in set(user_ids)
                if user_id in self._users
            }

    def create_proposal(self, proposal: ProposalRecord) -> None:
        with self._lock:
            self._proposals[proposal.id] = deepcopy(proposal)

    def update_proposal_content(
        self,
        *,
        proposal_id: str,
        title: str,
        description: str,
        updated_at: datetime,
    ) -> Optional[ProposalRecord]:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None or proposal.status != "open":
                return None
            proposal.title = title
            proposal.description = description
            proposal.updated_at = updated_at
            return deepcopy(proposal)

    def close_proposal(
        self, *, proposal_id: str, updated_at: datetime
    ) -> Optional[ProposalRecord]:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None or proposal.status != "open":
                return None
            proposal.status = "closed"
            proposal.updated_at = updated_at
            return deepcopy(proposal)

    def get_proposal(self, *, proposal_id: str) -> Optional[ProposalRecord]:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            return deepcopy(proposal) if proposal is not None else None

    def list_proposals(
        self,
        *,
        status: Optional[ProposalStatus],
        created_by: Optional[str],
    ) -> list[ProposalRecord]:
        with self._lock:
            rows = list(self._proposals.values())

        rows = sorted(rows, key=lambda x: (x.created_at, x.id), reverse=True)

        if status is not None:
            rows = [row for row in rows if row.status == status]
        if created_by is not None:
            rows = [row for row in rows if row.created_by == created_by]
        return [deepcopy(row) for row in rows]

    def allocate_round(
        self,
        *,
        proposal_id: str,
        round_id: str,
        created_at: datetime,
        reuse_latest: bool,
    ) -> Optional[DecisionRoundAllocation]:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None or proposal.status != "open":
                return None
            existing = [row for row in self._rounds.values() if row.proposal_id == proposal_id]
            latest = max(existing, key=lambda x: x.decision_point, default=None)
            if reuse_latest and latest is not None:
                return DecisionRoundAllocation(round=deepcopy(latest), created=False)

            decision_round = DecisionRoundRecord(
                id=round_id,
                proposal_id=proposal_id,
                decision_point=latest.decision_point + 1 if latest is not None else 1,
                vote_links=[],
                created_at=created_at,
            )
            self._rounds[round_id] = deepcopy(decision_round)
        return DecisionRoundAllocation(round=decision_round, created=True)

    def get_round(self, *, round_id: str) -> Optional[DecisionRoundRecord]:
        with self._lock:
            decision_round = self._rounds.get(round_id)
            return deepcopy(decision_round) if decision_round is not None else None

    def list_rounds(self, *, proposal_id: Optional[str]) -> list[DecisionRoundRecord]:
        with self._lock:
            rows = list(self._rounds.values())

        if proposal_id is None:
            rows = sorted(rows, key=lambda x: (x.created_at, x.id), reverse=True)
        else:
            rows = [row for row in rows if row.proposal_id == proposal_id]
            rows = sorted(rows, key=lambda x: x.decision_point, reverse=True)
        return [deepcopy(row) for row in rows]

    def update_round_outcome(
        self, *, round_id: str, changes: dict[str, Any]
    ) -> Optional[DecisionRoundRecord]:
        with self._lock:
            decision_round = self._rounds.get(round_id)
            if decision_round is None:
                return None
            for column in OUTCOME_COLUMNS:
                if column in changes:
                    setattr(decision_round, column, deepcopy(changes[column]))
            return deepcopy(decision_round)

    def find_vote(self, *, decision_id: str, user_id: str) -> Optional[VoteRecord]:
        with self._lock:
            vote_id = self._vote_by_caster.get((decision_id, user_id))
            if vote_id is None:
                return None
            return deepcopy(self._votes[vote_id])

    def record_vote(self, vote: VoteRecord) -> bool:
        with self._lock:
            caster_key = (vote.decision_id, vote.user_id)
            if caster_key in self._vote_by_caster:
                return False
            self._votes[vote.id] = deepcopy(vote)
            self._vote_by_caster[caster_key] = vote.id
            decision_round = self._rounds.get(vote.decision_id)
            if decision_round is not None:
                decision_round.vote_links.append(vote.id)
        return True

    def list_votes(self, *, decision_id: str) -> list[VoteRecord]:
        with self._lock:
            rows = [row for row in self._votes.values() if row.decision_id == decision_id]
        rows = sorted(rows, key=lambda x: (x.created_at, x.id))
        return [deepcopy(row) for row in rows]
