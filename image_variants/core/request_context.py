"""The handful of request values the delivery pipeline reads."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request

from .time_utils import parse_http_date

WEBP_MIME = "image/webp"
WEBP_BROWSER_TOKEN = " Chrome/"


@dataclass(frozen=True)
class RequestContext:
    if_modified_since: Optional[str] = None
    accept: str = ""
    user_agent: str = ""
    request_time: int = field(default_factory=lambda: int(time.time()))

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        headers = request.headers
        return cls(
            if_modified_since=headers.get("if-modified-since"),
            accept=headers.get("accept", ""),
            user_agent=headers.get("user-agent", ""),
        )

    @property
    def supports_webp(self) -> bool:
        return WEBP_MIME in self.accept or WEBP_BROWSER_TOKEN in self.user_agent

    def if_modified_since_timestamp(self) -> Optional[int]:
        return parse_http_date(self.if_modified_since)
