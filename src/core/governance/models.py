from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ProposalStatus = Literal["open", "closed"]
VoteDecision = Literal["approve", "deny", "abstain"]
ProposalListFilter = Literal["all", "active", "mine"]

VOTE_DECISIONS: tuple[str, ...] = ("approve", "deny", "abstain")
MIN_DESCRIPTION_LENGTH = 5
OUTCOME_COLUMNS: tuple[str, ...] = ("success", "percent_approval", "vote_links")


class ProposalCreateRequest(BaseModel):
    title: Optional[str] = Field(
        default=None,
        description="Proposal title. Must be a non-empty string.",
        examples=["Adopt policy X"],
    )
    description: Optional[str] = Field(
        default=None,
        description="Proposal description. At least 5 characters after trimming.",
        examples=["Detailed rationale here"],
    )


class ProposalUpdateRequest(BaseModel):
    title: Optional[str] = Field(
        default=None,
        description="Replacement title. Same rules as on creation.",
        examples=["Adopt policy X (revised)"],
    )
    description: Optional[str] = Field(
        default=None,
        description="Replacement description. Same rules as on creation.",
        examples=["Rationale updated after community call"],
    )


class Proposal(BaseModel):
    id: str = Field(
        description="Proposal identifier.", examples=["0b7c8a52-6f1e-4c55-9a3e-0c1b2d3e4f50"]
    )
    created_by: str = Field(
        description="User id of the proposal owner.",
        examples=["5f0a1c2d-3b4e-4f60-8a7b-9c0d1e2f3a4b"],
    )
    title: str = Field(description="Proposal title.", examples=["Adopt policy X"])
    description: str = Field(
        description="Proposal description.", examples=["Detailed rationale here"]
    )
    status: ProposalStatus = Field(description="Lifecycle status.", examples=["open"])
    created_at: str = Field(
        description="UTC ISO8601 creation timestamp.",
        examples=["2026-02-19T12:00:00+00:00"],
    )
    updated_at: str = Field(
        description="UTC ISO8601 timestamp of the last edit or close.",
        examples=["2026-02-19T12:05:00+00:00"],
    )


class DecisionRoundCreateRequest(BaseModel):
    proposal_id: Optional[str] = Field(
        default=None,
        description="Proposal the voting round belongs to.",
        examples=["0b7c8a52-6f1e-4c55-9a3e-0c1b2d3e4f50"],
    )
    new_round: bool = Field(
        default=False,
        description=(
            "When false the latest existing round is returned if the proposal already has one. "
            "When true a further round is always opened with the next decision point."
        ),
        examples=[False],
    )


class DecisionRoundOutcomeUpdate(BaseModel):
    success: Optional[bool] = Field(
        default=None, description="Outcome of the round.", examples=[True]
    )
    percent_approval: Optional[float] = Field(
        default=None,
        description="Approval percentage in the range 0..100.",
        examples=[66.67],
    )
    vote_links: Optional[List[str]] = Field(
        default=None,
        description="Replacement list of vote ids linked to the round.",
        examples=[["a3c1e5f7-2b4d-4e6f-8a1c-3e5f7a9b1d2c"]],
    )


class DecisionRound(BaseModel):
    id: str = Field(
        description="Decision round identifier.",
        examples=["9d8c7b6a-5f4e-4d3c-8b2a-1f0e9d8c7b6a"],
    )
    proposal_id: str = Field(
        description="Owning proposal identifier.",
        examples=["0b7c8a52-6f1e-4c55-9a3e-0c1b2d3e4f50"],
    )
    decision_point: int = Field(
        description="Ordinal of the round within its proposal, starting at 1.", examples=[1]
    )
    success: Optional[bool] = Field(
        default=None, description="Outcome set by the proposal owner.", examples=[None]
    )
    percent_approval: Optional[float] = Field(
        default=None, description="Approval percentage set by the proposal owner.", examples=[None]
    )
    vote_links: List[str] = Field(
        default_factory=list,
        description="Ids of the votes cast in this round, in casting order.",
        examples=[[]],
    )
    created_at: str = Field(
        description="UTC ISO8601 creation timestamp.",
        examples=["2026-02-19T12:10:00+00:00"],
    )


class DecisionTally(BaseModel):
    decision_id: str = Field(
        description="Decision round identifier.",
        examples=["9d8c7b6a-5f4e-4d3c-8b2a-1f0e9d8c7b6a"],
    )
    approve: int = Field(description="Number of approve votes.", examples=[2])
    deny: int = Field(description="Number of deny votes.", examples=[1])
    abstain: int = Field(description="Number of abstain votes.", examples=[0])
    total: int = Field(description="Number of votes cast.", examples=[3])
    percent_approval: Optional[float] = Field(
        default=None,
        description=(
            "approve / (approve + deny) * 100, rounded to two places. Abstentions excluded."
        ),
        examples=[66.67],
    )


class VoteCreateRequest(BaseModel):
    decision_id: Optional[str] = Field(
        default=None,
        description="Decision round the vote is cast in.",
        examples=["9d8c7b6a-5f4e-4d3c-8b2a-1f0e9d8c7b6a"],
    )
    decision: Optional[str] = Field(
        default=None,
        description="One of approve, deny, abstain.",
        examples=["approve"],
    )
    voting_logic: Optional[str] = Field(
        default=None,
        description="Optional free-text rationale.",
        examples=["Aligned with the treasury mandate."],
    )
    agent_vote: bool = Field(
        default=False,
        description="Marks a vote cast by an automated agent on behalf of the caller.",
        examples=[False],
    )


class VoteCaster(BaseModel):
    username: Optional[str] = Field(default=None, examples=["alice"])
    email: Optional[str] = Field(default=None, examples=["alice@example.org"])


class Vote(BaseModel):
    id: str = Field(
        description="Vote identifier.", examples=["a3c1e5f7-2b4d-4e6f-8a1c-3e5f7a9b1d2c"]
    )
    decision_id: str = Field(
        description="Decision round identifier.",
        examples=["9d8c7b6a-5f4e-4d3c-8b2a-1f0e9d8c7b6a"],
    )
    user_id: str = Field(
        description="Caster user id.", examples=["5f0a1c2d-3b4e-4f60-8a7b-9c0d1e2f3a4b"]
    )
    username: Optional[str] = Field(
        default=None, description="Caster username at casting time.", examples=["alice"]
    )
    decision: VoteDecision = Field(description="Ballot choice.", examples=["approve"])
    voting_logic: Optional[str] = Field(
        default=None, description="Optional rationale.", examples=[None]
    )
    created_at: str = Field(
        description="UTC ISO8601 casting timestamp.",
        examples=["2026-02-19T12:15:00+00:00"],
    )
    agent_vote: bool = Field(default=False, description="Cast by an automated agent.")
    users: Optional[VoteCaster] = Field(
        default=None,
        description="Caster profile joined from the users collection on listings.",
    )


class UserRecord(BaseModel):
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime


class ProposalRecord(BaseModel):
    id: str
    created_by: str
    title: str
    description: str
    status: ProposalStatus
    created_at: datetime
    updated_at: datetime


class DecisionRoundRecord(BaseModel):
    id: str
    proposal_id: str
    decision_point: int
    success: Optional[bool] = None
    percent_approval: Optional[float] = None
    vote_links: List[str] = Field(default_factory=list)
    created_at: datetime


class VoteRecord(BaseModel):
    id: str
    decision_id: str
    user_id: str
    username: Optional[str] = None
    decision: VoteDecision
    voting_logic: Optional[str] = None
    created_at: datetime
    agent_vote: bool = False


class DecisionRoundAllocation(BaseModel):
    round: DecisionRoundRecord
    created: bool
