"""
Client address used for rate limiting and request logs.

Forwarding headers are set by whoever sends the request, so they are only
read when the service is configured to sit behind a proxy that overwrites
them.
"""
from __future__ import annotations

from fastapi import Request

FORWARDED_FOR_HEADER = "X-Forwarded-For"
REAL_IP_HEADER = "X-Real-IP"
UNKNOWN_CLIENT = "unknown"


def resolve_client_ip(request: Request, trust_proxy_headers: bool = False) -> str:
    if trust_proxy_headers:
        forwarded_for = request.headers.get(FORWARDED_FOR_HEADER, "")
        # Left-most entry is the original client.
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

        real_ip = request.headers.get(REAL_IP_HEADER, "").strip()
        if real_ip:
            return real_ip

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT
