"""Deciding whether a request reached us over https.

The forwarded-header check is a heuristic, not a security boundary: any
client that can reach the app directly can send ``X-Forwarded-Proto``.
Configure ``TRUSTED_PROXIES`` to only honour the header from known peers.
"""
import os
from collections.abc import Iterable
from typing import Protocol

from fastapi import Request

FORWARDED_PROTO_HEADER = "X-Forwarded-Proto"


class SchemePolicy(Protocol):
    def scheme(self, request: Request) -> str:
        ...


class ForwardedProtoPolicy:
    """https if the connection itself is TLS or a trusted peer says so."""

    def __init__(self, trusted_proxies: Iterable[str] | None = None):
        # None trusts every peer
        self.trusted_proxies = frozenset(trusted_proxies) if trusted_proxies is not None else None

    def _trusts(self, request: Request) -> bool:
        if self.trusted_proxies is None:
            return True
        return request.client is not None and request.client.host in self.trusted_proxies

    def scheme(self, request: Request) -> str:
        if request.url.scheme == "https":
            return "https"
        if request.headers.get(FORWARDED_PROTO_HEADER) == "https" and self._trusts(request):
            return "https"
        return "http"


def policy_from_env() -> ForwardedProtoPolicy:
    raw = os.getenv("TRUSTED_PROXIES", "").strip()
    if not raw:
        return ForwardedProtoPolicy()
    return ForwardedProtoPolicy(p.strip() for p in raw.split(",") if p.strip())


_policy = policy_from_env()

def get_scheme_policy() -> SchemePolicy:
    return _policy

def base_url(request: Request, policy: SchemePolicy) -> str:
    return f"{policy.scheme(request)}://{request.url.netloc}"
