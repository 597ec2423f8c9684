import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.observability import setup_observability
from src.api.persistence_profile import validate_persistence_profile_guardrails
from src.api.routers.decisions import router as decision_router
from src.api.routers.proposals import router as proposal_router
from src.api.routers.runtime_utils import env_flag
from src.api.routers.votes import router as vote_router


@asynccontextmanager
async def _app_lifespan(_app: FastAPI):
    validate_persistence_profile_guardrails()
    yield


app = FastAPI(
    title="DAO Vote API",
    version="0.1.0",
    description=(
        "Governance service for proposals, numbered decision rounds and one-vote-per-user "
        "ballots.\n\nEvery governance route requires a verified caller identity."
    ),
    openapi_tags=[
        {"name": "Proposals", "description": "Proposal lifecycle endpoints."},
        {"name": "Decision Rounds", "description": "Decision round and outcome endpoints."},
        {"name": "Votes", "description": "Vote casting and listing endpoints."},
        {"name": "Health", "description": "Liveness and readiness probes."},
    ],
    lifespan=_app_lifespan,
)

setup_observability(app)
logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["Health"])


@health_router.get("/health", summary="Health Check")
def health() -> dict[str, str]:
    return {"status": "ok"}


@health_router.get("/health/live", summary="Liveness Probe")
def health_live() -> dict[str, str]:
    return {"status": "live"}


@health_router.get("/health/ready", summary="Readiness Probe")
def health_ready() -> dict[str, str]:
    return {"status": "ready"}


for _router in (health_router, proposal_router, decision_router, vote_router):
    app.include_router(_router)
    if env_flag("GOVERNANCE_API_V1_PREFIX_ENABLED", True):
        app.include_router(_router, prefix="/api/v1")


@app.exception_handler(RequestValidationError)
async def request_validation_to_bad_request(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "INVALID_REQUEST: request payload failed validation",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )
