"""Command line entry point: run the API, cast a vote, or play the reveal."""

import argparse
import asyncio
import sys
from collections.abc import Callable, Sequence
from typing import TextIO

from podium.client import PodiumClient
from podium.config import API_BASE_URL
from podium.identity import machine_fingerprint
from podium.models import MAX_NUMBER, MIN_NUMBER
from podium.reveal import Celebration, OnComplete, RevealChoreography, Token
from podium.voting import VotingFlow, VotingState


class TerminalRenderer:
    """Prints each reveal phase and reports it finished straight away."""

    def __init__(self, out: TextIO = sys.stdout) -> None:
        self.out = out

    def _print(self, text: str) -> None:
        print(text, file=self.out)

    def spawn(self, tokens: Sequence[Token], on_complete: OnComplete) -> None:
        self._print(f"Spawning {len(tokens)} votes")
        on_complete()

    def group(self, tokens: Sequence[Token], on_complete: OnComplete) -> None:
        groups: dict[int, int] = {}
        for token in tokens:
            groups[token.number] = groups.get(token.number, 0) + 1
        summary = ", ".join(f"{number}x{count}" for number, count in sorted(groups.items()))
        self._print(f"Grouping: {summary or '-'}")
        on_complete()

    def promote(
        self,
        winners: Sequence[Token],
        losers: Sequence[Token],
        on_complete: OnComplete,
    ) -> None:
        self._print(f"Podium: {len(winners)} votes promoted, {len(losers)} faded out")
        on_complete()

    def celebrate(self, celebration: Celebration) -> None:
        self._print(celebration.title)
        for label, entry in zip(("1st", "2nd", "3rd"), celebration.winners):
            self._print(f"  {label}: {entry.number} ({entry.count} votes)")


async def run_vote(
    client: PodiumClient,
    number: int,
    identity_provider: Callable[[], str] = machine_fingerprint,
    out: TextIO = sys.stdout,
) -> int:
    flow = VotingFlow(client, identity_provider=identity_provider)
    if await flow.load() is VotingState.READY_TO_VOTE:
        flow.select(number)
        await flow.submit()

    if flow.done:
        print(flow.message, file=out)
        return 0
    print(f"Vote not recorded: {flow.alert}", file=out)
    return 1


async def run_reveal(client: PodiumClient, renderer: TerminalRenderer) -> RevealChoreography:
    choreography = await RevealChoreography.load(client, renderer)
    choreography.start()
    return choreography


async def _vote(args: argparse.Namespace) -> int:
    identity = (lambda: args.fingerprint) if args.fingerprint else machine_fingerprint
    async with PodiumClient(args.url) as client:
        return await run_vote(client, args.number, identity)


async def _reveal(args: argparse.Namespace) -> int:
    async with PodiumClient(args.url) as client:
        await run_reveal(client, TerminalRenderer())
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("podium.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _number(value: str) -> int:
    number = int(value)
    if not MIN_NUMBER <= number <= MAX_NUMBER:
        raise argparse.ArgumentTypeError(
            f"must be between {MIN_NUMBER} and {MAX_NUMBER}"
        )
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="podium", description="Pick-a-number vote with a podium reveal"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(handler=_serve)

    vote = commands.add_parser("vote", help="Cast this machine's vote")
    vote.add_argument("number", type=_number)
    vote.add_argument("--url", default=API_BASE_URL)
    vote.add_argument("--fingerprint", help="Override the machine fingerprint")
    vote.set_defaults(handler=_vote)

    reveal = commands.add_parser("reveal", help="Fetch results and play the reveal")
    reveal.add_argument("--url", default=API_BASE_URL)
    reveal.set_defaults(handler=_reveal)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    result = args.handler(args)
    if asyncio.iscoroutine(result):
        result = asyncio.run(result)
    return result


if __name__ == "__main__":
    sys.exit(main())
