from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from src.api.observability import bind_caller
from src.api.routers import governance_config
from src.api.routers.runtime_utils import normalize_backend_init_error
from src.core.governance import (
    DecisionRoundService,
    GovernanceRepository,
    ProposalLifecycleService,
    VoteCastingService,
)
from src.core.identity import CallerIdentity, IdentityResolver

_REPOSITORY: Optional[GovernanceRepository] = None
_RESOLVER: Optional[IdentityResolver] = None

_STORE_INIT_ERRORS = {
    "GOVERNANCE_POSTGRES_DSN_REQUIRED",
    "GOVERNANCE_POSTGRES_DRIVER_MISSING",
}
_IDENTITY_INIT_ERRORS = {
    "AUTH_PROVIDER_URL_REQUIRED",
    "AUTH_PROVIDER_API_KEY_REQUIRED",
    "AUTH_STATIC_TOKENS_INVALID",
}


def get_governance_repository() -> GovernanceRepository:
    global _REPOSITORY
    if _REPOSITORY is None:
        try:
            _REPOSITORY = governance_config.build_repository()
        except RuntimeError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=normalize_backend_init_error(
                    detail=str(exc),
                    passthrough_details=_STORE_INIT_ERRORS,
                    fallback_detail="GOVERNANCE_POSTGRES_CONNECTION_FAILED",
                ),
            ) from exc
    return _REPOSITORY


def get_identity_resolver(
    repository: Annotated[GovernanceRepository, Depends(get_governance_repository)],
) -> IdentityResolver:
    global _RESOLVER
    if _RESOLVER is None:
        try:
            provider = governance_config.build_identity_provider()
        except RuntimeError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=normalize_backend_init_error(
                    detail=str(exc),
                    passthrough_details=_IDENTITY_INIT_ERRORS,
                    fallback_detail="AUTH_PROVIDER_UNAVAILABLE",
                ),
            ) from exc
        _RESOLVER = IdentityResolver(provider=provider, repository=repository)
    return _RESOLVER


def get_caller_identity(
    request: Request,
    authorization: Annotated[
        Optional[str],
        Header(
            alias="Authorization",
            description="Bearer access token issued by the identity provider.",
            examples=["Bearer eyJhbGciOiJIUzI1NiJ9.example"],
        ),
    ] = None,
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)] = None,
) -> CallerIdentity:
    token = _bearer_token(authorization) or request.cookies.get(
        governance_config.access_token_cookie_name()
    )
    identity = resolver.resolve(token)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="UNAUTHORIZED: valid session required",
        )
    bind_caller(request, identity.id)
    return identity


def get_proposal_service(
    repository: Annotated[GovernanceRepository, Depends(get_governance_repository)],
) -> ProposalLifecycleService:
    return ProposalLifecycleService(repository=repository)


def get_decision_round_service(
    repository: Annotated[GovernanceRepository, Depends(get_governance_repository)],
) -> DecisionRoundService:
    return DecisionRoundService(repository=repository)


def get_vote_service(
    repository: Annotated[GovernanceRepository, Depends(get_governance_repository)],
) -> VoteCastingService:
    return VoteCastingService(repository=repository)


def reset_governance_dependencies_for_tests() -> None:
    global _REPOSITORY
    global _RESOLVER
    _REPOSITORY = None
    _RESOLVER = None


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None
