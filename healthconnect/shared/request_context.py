"""Client metadata pulled from the inbound request for sessions and audit logs"""

import re
from dataclasses import dataclass

from fastapi import Request

_BROWSERS = (
    ("Edge", re.compile(r"Edg(e|A|iOS)?/")),
    ("Opera", re.compile(r"OPR/|Opera")),
    ("Chrome", re.compile(r"Chrome/|CriOS/")),
    ("Firefox", re.compile(r"Firefox/|FxiOS/")),
    ("Safari", re.compile(r"Safari/")),
)
_OPERATING_SYSTEMS = (
    ("Windows", re.compile(r"Windows")),
    ("Android", re.compile(r"Android")),
    ("iOS", re.compile(r"iPhone|iPad|iPod")),
    ("macOS", re.compile(r"Mac OS X|Macintosh")),
    ("Linux", re.compile(r"Linux")),
)


@dataclass(frozen=True)
class RequestMeta:
    ip_address: str = "unknown"
    user_agent: str = ""

    @property
    def browser(self) -> str:
        return _first_match(_BROWSERS, self.user_agent)

    @property
    def os(self) -> str:
        return _first_match(_OPERATING_SYSTEMS, self.user_agent)

    @property
    def device(self) -> str:
        if not self.user_agent:
            return "Unknown"
        if re.search(r"iPad|Tablet", self.user_agent):
            return "Tablet"
        if re.search(r"Mobile|iPhone|Android", self.user_agent):
            return "Mobile"
        return "Desktop"


def _first_match(table, user_agent: str) -> str:
    for name, pattern in table:
        if pattern.search(user_agent or ""):
            return name
    return "Unknown"


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_request_meta(request: Request) -> RequestMeta:
    """FastAPI dependency"""
    return RequestMeta(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent", "")[:500],
    )
