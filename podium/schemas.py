from pydantic import AliasChoices, BaseModel, Field, StrictInt, StrictStr

from podium.models import FINGERPRINT_MAX_LENGTH, MAX_NUMBER, MIN_NUMBER


class VoteRequest(BaseModel):
    number: StrictInt = Field(ge=MIN_NUMBER, le=MAX_NUMBER)
    fingerprint: StrictStr = Field(
        min_length=1,
        max_length=FINGERPRINT_MAX_LENGTH,
        validation_alias=AliasChoices("fingerprint", "fp"),
    )


class VoteResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str


class VoteStatusResponse(BaseModel):
    hasVoted: bool


class RankedNumber(BaseModel):
    number: int
    count: int


class ResultsResponse(BaseModel):
    counts: dict[str, int]
    top3: list[RankedNumber]
    totalVotes: int


class VotesResponse(BaseModel):
    votes: list[int]


class HealthResponse(BaseModel):
    status: str = "ok"
