from fastapi import Request

from podium.models import UNKNOWN_IP


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, or the "unknown" sentinel.

    Informational only; never used to enforce or relax the one-vote rule.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return UNKNOWN_IP


def user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent") or None
