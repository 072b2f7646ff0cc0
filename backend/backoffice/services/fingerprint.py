# Overview: Device fingerprinting for refresh-token sessions.

from __future__ import annotations

import hashlib
from dataclasses import dataclass


def build_fingerprint(
    user_agent: str | None = None,
    ip_address: str | None = None,
    device_name: str | None = None,
) -> str:
    """
    SHA-256 hex digest of the device context.

    Fields are joined as "user_agent|device_name|ip_address" with missing
    values rendered as "". The digest is only ever compared for equality.
    """
    raw = f"{user_agent or ''}|{device_name or ''}|{ip_address or ''}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class RequestContext:
    """Device and network context of the request presenting a credential."""
    user_agent: str | None
    ip_address: str | None
    device_name: str | None

    def fingerprint(self) -> str:
        return build_fingerprint(self.user_agent, self.ip_address, self.device_name)

    @classmethod
    def from_request(cls, request) -> "RequestContext":
        """Build from a Flask request (User-Agent, remote address, Sec-CH-UA)."""
        return cls(
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
            device_name=request.headers.get("Sec-CH-UA"),
        )
