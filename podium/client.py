from typing import Any

import httpx

from podium.config import API_BASE_URL


class PodiumClient:
    """Thin async client for the voting API, shared by the voting and reveal flows."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "PodiumClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def vote_status(self, fingerprint: str) -> bool:
        response = await self._http.get("/vote/status", params={"fp": fingerprint})
        response.raise_for_status()
        return bool(response.json()["hasVoted"])

    async def submit_vote(self, number: int, fingerprint: str) -> tuple[int, dict[str, Any]]:
        response = await self._http.post(
            "/vote", json={"number": number, "fingerprint": fingerprint}
        )
        try:
            body = response.json()
        except ValueError:
            body = {}
        return response.status_code, body

    async def votes(self) -> list[int]:
        response = await self._http.get("/votes")
        response.raise_for_status()
        return list(response.json()["votes"])

    async def results(self) -> dict[str, Any]:
        response = await self._http.get("/results")
        response.raise_for_status()
        return response.json()
