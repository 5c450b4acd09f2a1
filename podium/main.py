import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from podium import services
from podium.config import AUTO_CREATE_TABLES, CORS_ORIGINS, LOG_LEVEL
from podium.database import engine, get_session
from podium.errors import PodiumError, ValidationError
from podium.models import Base
from podium.request_meta import client_ip, user_agent
from podium.schemas import (
    ErrorResponse,
    HealthResponse,
    ResultsResponse,
    VoteRequest,
    VoteResponse,
    VotesResponse,
    VoteStatusResponse,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if AUTO_CREATE_TABLES:
        logger.info("Creating tables from metadata")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    yield
    await engine.dispose()


app = FastAPI(lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=ErrorResponse(error=code).model_dump()
    )


@app.exception_handler(PodiumError)
async def podium_error_handler(request: Request, exc: PodiumError) -> JSONResponse:
    return _error(exc.status_code, exc.code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return _error(status.HTTP_400_BAD_REQUEST, ValidationError.code)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")


@app.post("/vote", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
async def vote(
    payload: VoteRequest,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    await services.submit_vote(
        session,
        number=payload.number,
        fingerprint=payload.fingerprint,
        ip=client_ip(request),
        user_agent=user_agent(request),
    )
    return VoteResponse()


@app.get("/vote/status", response_model=VoteStatusResponse)
async def vote_status(
    fp: str | None = None,
    session: AsyncSession = Depends(get_session),
):
    has_voted = await services.has_voted(session, fp)
    return VoteStatusResponse(hasVoted=has_voted)


@app.get("/results", response_model=ResultsResponse)
async def get_results(
    session: AsyncSession = Depends(get_session),
):
    return await services.aggregate_results(session)


@app.get("/votes", response_model=VotesResponse)
async def get_votes(
    session: AsyncSession = Depends(get_session),
):
    numbers = await services.list_vote_numbers(session)
    return VotesResponse(votes=numbers)


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse()
