"""Headless state machine behind the voting screen."""

import enum
import logging
from collections.abc import Callable

import httpx

from podium.client import PodiumClient
from podium.identity import machine_fingerprint
from podium.models import MAX_NUMBER, MIN_NUMBER

logger = logging.getLogger(__name__)

DEFAULT_SELECTION = 50

THANK_YOU = "Thanks for voting!"
ALREADY_VOTED = "You have already voted. Thanks!"
CONNECTION_ERROR = "CONNECTION_ERROR"


class VotingState(enum.Enum):
    LOADING = "loading"
    READY_TO_VOTE = "ready_to_vote"
    SUBMITTING = "submitting"
    ALREADY_VOTED = "already_voted"
    SUCCESS = "success"


TERMINAL_STATES = frozenset({VotingState.ALREADY_VOTED, VotingState.SUCCESS})


class InvalidTransition(RuntimeError):
    pass


class VotingFlow:
    def __init__(
        self,
        client: PodiumClient,
        identity_provider: Callable[[], str] = machine_fingerprint,
    ) -> None:
        self.client = client
        self.identity_provider = identity_provider
        self.state = VotingState.LOADING
        self.fingerprint: str | None = None
        self.selection = DEFAULT_SELECTION
        self.alert: str | None = None

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def message(self) -> str | None:
        if self.state is VotingState.SUCCESS:
            return THANK_YOU
        if self.state is VotingState.ALREADY_VOTED:
            return ALREADY_VOTED
        return None

    async def load(self) -> VotingState:
        if self.state is not VotingState.LOADING:
            raise InvalidTransition(f"load() from {self.state.value}")

        # Any failure here falls through to voting; the server re-checks.
        try:
            self.fingerprint = self.identity_provider()
            has_voted = await self.client.vote_status(self.fingerprint)
        except (httpx.HTTPError, KeyError, ValueError, OSError) as exc:
            logger.warning("Vote status unavailable, allowing vote: %s", exc)
            has_voted = False

        self.state = VotingState.ALREADY_VOTED if has_voted else VotingState.READY_TO_VOTE
        return self.state

    def select(self, value: float) -> int:
        if self.state is not VotingState.READY_TO_VOTE:
            raise InvalidTransition(f"select() from {self.state.value}")
        self.selection = min(MAX_NUMBER, max(MIN_NUMBER, round(value)))
        return self.selection

    async def submit(self) -> VotingState:
        if self.state is not VotingState.READY_TO_VOTE or not self.fingerprint:
            raise InvalidTransition(f"submit() from {self.state.value}")

        self.state = VotingState.SUBMITTING
        self.alert = None
        try:
            status_code, body = await self.client.submit_vote(
                self.selection, self.fingerprint
            )
        except httpx.HTTPError as exc:
            logger.warning("Vote submission failed: %s", exc)
            self.alert = CONNECTION_ERROR
            self.state = VotingState.READY_TO_VOTE
            return self.state

        if status_code == 201:
            self.state = VotingState.SUCCESS
        elif status_code == 409:
            self.state = VotingState.ALREADY_VOTED
        else:
            self.alert = body.get("error") or f"HTTP_{status_code}"
            self.state = VotingState.READY_TO_VOTE
        return self.state
