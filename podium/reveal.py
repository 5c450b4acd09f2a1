"""Reveal choreography as an explicit state machine.

The reveal runs four phases in a fixed order:

    IDLE -> SPAWNING -> GROUPING -> PODIUM -> CELEBRATING

Each phase computes the layout for every vote token and hands it to a
``Renderer`` together with a completion callback. The renderer (a browser
animation library, a terminal printer, a test double) calls it back once
the phase has finished playing, which moves the choreography on. Callbacks
that arrive for a phase that is no longer current are ignored.

Winners come from the ``top3`` list of the results payload, never from
recounting the raw feed.
"""

import asyncio
import enum
import math
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from podium.client import PodiumClient
from podium.schemas import RankedNumber, ResultsResponse

SPAWN_MARGIN = 50
SPAWN_STAGGER = 0.1
GROUP_JITTER = 10
PODIUM_JITTER = 40
PODIUM_STAGGER = 0.2
WINNER_TITLE = "WINNERS!"

FIREWORKS = {
    "opacity": 0.5,
    "acceleration": 1.05,
    "friction": 0.97,
    "gravity": 1.5,
    "particles": 50,
    "trace_length": 3,
    "trace_speed": 10,
    "explosion": 5,
    "intensity": 30,
    "flickering": 50,
    "hue": (0, 360),
    "delay": (30, 60),
    "brightness": (50, 80),
    "decay": (0.015, 0.03),
}


class RevealPhase(enum.Enum):
    IDLE = "idle"
    SPAWNING = "spawning"
    GROUPING = "grouping"
    PODIUM = "podium"
    CELEBRATING = "celebrating"


_NEXT_PHASE = {
    RevealPhase.SPAWNING: RevealPhase.GROUPING,
    RevealPhase.GROUPING: RevealPhase.PODIUM,
    RevealPhase.PODIUM: RevealPhase.CELEBRATING,
}


@dataclass(frozen=True)
class PodiumSlot:
    rank: int
    label: str
    dx: float
    dy: float
    scale: float


# Offsets are relative to the viewport centre.
PODIUM_SLOTS = (
    PodiumSlot(rank=1, label="1st", dx=0, dy=-100, scale=2.0),
    PodiumSlot(rank=2, label="2nd", dx=-250, dy=50, scale=1.5),
    PodiumSlot(rank=3, label="3rd", dx=250, dy=50, scale=1.5),
)


@dataclass
class Token:
    index: int
    number: int
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    opacity: float = 1.0
    delay: float = 0.0
    z_index: int = 0
    glow: bool = False


@dataclass
class Celebration:
    title: str
    winners: list[RankedNumber]
    fireworks: dict[str, Any] = field(default_factory=lambda: dict(FIREWORKS))


OnComplete = Callable[[], None]


class Renderer(Protocol):
    def spawn(self, tokens: Sequence[Token], on_complete: OnComplete) -> None: ...

    def group(self, tokens: Sequence[Token], on_complete: OnComplete) -> None: ...

    def promote(
        self,
        winners: Sequence[Token],
        losers: Sequence[Token],
        on_complete: OnComplete,
    ) -> None: ...

    def celebrate(self, celebration: Celebration) -> None: ...


class InvalidPhase(RuntimeError):
    pass


class RevealChoreography:
    def __init__(
        self,
        votes: Sequence[int],
        results: ResultsResponse | dict[str, Any],
        renderer: Renderer,
        viewport: tuple[float, float] = (1280, 720),
        rng: random.Random | None = None,
    ) -> None:
        if not isinstance(results, ResultsResponse):
            results = ResultsResponse.model_validate(results)
        self.votes = list(votes)
        self.results = results
        self.renderer = renderer
        self.width, self.height = viewport
        self.rng = rng or random.Random()
        self.phase = RevealPhase.IDLE
        self.tokens = [Token(index=i, number=n) for i, n in enumerate(self.votes)]
        self.cells: dict[int, tuple[float, float]] = {}

    @classmethod
    async def load(
        cls, client: PodiumClient, renderer: Renderer, **kwargs
    ) -> "RevealChoreography":
        votes, results = await asyncio.gather(client.votes(), client.results())
        return cls(votes, results, renderer, **kwargs)

    @property
    def winners(self) -> list[RankedNumber]:
        return list(self.results.top3[: len(PODIUM_SLOTS)])

    def start(self) -> None:
        if self.phase is not RevealPhase.IDLE:
            raise InvalidPhase(f"start() from {self.phase.value}")
        self._enter(RevealPhase.SPAWNING)

    def _completion(self, phase: RevealPhase) -> OnComplete:
        def on_complete() -> None:
            if self.phase is phase:
                self._enter(_NEXT_PHASE[phase])

        return on_complete

    def _enter(self, phase: RevealPhase) -> None:
        self.phase = phase
        if phase is RevealPhase.SPAWNING:
            self._spawn()
        elif phase is RevealPhase.GROUPING:
            self._group()
        elif phase is RevealPhase.PODIUM:
            self._promote()
        elif phase is RevealPhase.CELEBRATING:
            self.renderer.celebrate(
                Celebration(title=WINNER_TITLE, winners=self.winners)
            )

    def _spawn(self) -> None:
        order = list(range(len(self.tokens)))
        self.rng.shuffle(order)
        for step, index in enumerate(order):
            token = self.tokens[index]
            token.x = self.rng.random() * (self.width - 2 * SPAWN_MARGIN) + SPAWN_MARGIN
            token.y = self.rng.random() * (self.height - 2 * SPAWN_MARGIN) + SPAWN_MARGIN
            token.delay = step * SPAWN_STAGGER
        self.renderer.spawn(self.tokens, self._completion(RevealPhase.SPAWNING))

    def _group(self) -> None:
        self.cells = self.grid_cells()
        for token in self.tokens:
            cx, cy = self.cells[token.number]
            token.x = cx + self._jitter(GROUP_JITTER)
            token.y = cy + self._jitter(GROUP_JITTER)
            token.delay = 0.0
        self.renderer.group(self.tokens, self._completion(RevealPhase.GROUPING))

    def grid_cells(self) -> dict[int, tuple[float, float]]:
        """One cell centre per distinct number, laid out on a square grid."""
        numbers = [int(n) for n in self.results.counts]
        # The feed and the results are fetched separately and may disagree.
        numbers += sorted({n for n in self.votes} - set(numbers))
        if not numbers:
            return {}

        cols = math.ceil(math.sqrt(len(numbers)))
        spacing_x = self.width / (cols + 1)
        spacing_y = self.height / (cols + 1)
        return {
            number: ((i % cols + 1) * spacing_x, (i // cols + 1) * spacing_y)
            for i, number in enumerate(numbers)
        }

    def _promote(self) -> None:
        cx, cy = self.width / 2, self.height / 2
        rank_of = {entry.number: i for i, entry in enumerate(self.winners)}

        winners, losers = [], []
        for token in self.tokens:
            rank_index = rank_of.get(token.number)
            if rank_index is None:
                token.opacity = 0.0
                token.scale = 0.0
                token.glow = False
                losers.append(token)
                continue
            slot = PODIUM_SLOTS[rank_index]
            token.x = cx + slot.dx + self._jitter(PODIUM_JITTER)
            token.y = cy + slot.dy + self._jitter(PODIUM_JITTER)
            token.scale = slot.scale
            token.z_index = 100 - rank_index
            token.delay = rank_index * PODIUM_STAGGER
            token.glow = True
            winners.append(token)

        self.renderer.promote(winners, losers, self._completion(RevealPhase.PODIUM))

    def _jitter(self, spread: float) -> float:
        return (self.rng.random() - 0.5) * spread
