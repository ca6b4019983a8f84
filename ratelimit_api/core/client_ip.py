"""Client address resolution behind reverse proxies.

Trust policy: the address chain is the ``X-Forwarded-For`` entries (left to
right) followed by the socket peer. With ``trusted_hops = N`` the last ``N``
addresses of that chain are trusted proxies and the client is the address
right before them. Entries further left are client-supplied and ignored, so a
spoofed ``X-Forwarded-For`` cannot pick its own rate limit key.
"""

from __future__ import annotations

from fastapi import Request

from ratelimit_api.core.config import settings

FORWARDED_FOR_HEADER = "x-forwarded-for"
UNKNOWN_CLIENT = "unknown"


def parse_forwarded_for(header_value: str | None) -> list[str]:
    """Split an X-Forwarded-For header into addresses.

    Examples:
        >>> parse_forwarded_for("203.0.113.7, 10.0.0.2")
        ['203.0.113.7', '10.0.0.2']
        >>> parse_forwarded_for(" , 10.0.0.2,")
        ['10.0.0.2']
        >>> parse_forwarded_for(None)
        []
    """
    if not header_value:
        return []
    return [part.strip() for part in header_value.split(",") if part.strip()]


def resolve_client_ip(
    peer: str | None,
    forwarded_for: str | None,
    trusted_hops: int,
) -> str:
    """Pick the client address from the proxy chain.

    Args:
        peer: Address of the socket peer (the nearest proxy or the client).
        forwarded_for: Raw X-Forwarded-For header value.
        trusted_hops: Number of trusted proxies in front of the app.

    Returns:
        The resolved client address, or ``"unknown"`` when nothing is known.

    Raises:
        ValueError: If trusted_hops is negative.
    """
    if trusted_hops < 0:
        raise ValueError("trusted_hops must be >= 0")

    if trusted_hops == 0:
        return peer or UNKNOWN_CLIENT

    chain = parse_forwarded_for(forwarded_for)
    chain.append(peer or UNKNOWN_CLIENT)

    # Chain shorter than the trusted hops: the left-most entry is the best guess
    index = max(0, len(chain) - 1 - trusted_hops)
    return chain[index]


def client_ip_from_request(request: Request, trusted_hops: int | None = None) -> str:
    """Default rate limit key function: proxy-aware client IP.

    ``trusted_hops`` falls back to ``APP_TRUST_PROXY_HOPS`` when not bound,
    e.g. ``functools.partial(client_ip_from_request, trusted_hops=2)``.
    """

    if trusted_hops is None:
        trusted_hops = settings.app.trust_proxy_hops
    peer = request.client.host if request.client else None
    return resolve_client_ip(
        peer,
        request.headers.get(FORWARDED_FOR_HEADER),
        trusted_hops,
    )
