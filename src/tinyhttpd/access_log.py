"""
=============================================================================
ACCESS LOG
=============================================================================

One line per parsed request, in the Common Log Format layout:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ 10.0.0.7 - - [19/Oct/2026:14:02:11 +0000] "GET /docs/ HTTP/1.1" 200  │
    │ ──────────────────────────────────────────────────────────────────── │
    │ IP             Timestamp (UTC)             Request line      Status │
    └─────────────────────────────────────────────────────────────────────┘

- The IP is the X-Forwarded-For value when the client sent one.
- The path is the DECODED path, i.e. what was looked up on disk.
- The status is what the request resolved to. A miss logs 404 even
  though the client receives the 200 root listing.

Requests that fail to parse are never logged here.

=============================================================================
LOGGER NAMES
=============================================================================

Access lines go to the dedicated "tinyhttpd.access" logger, so they can be
routed separately from diagnostics:

    logging.getLogger("tinyhttpd.access").addHandler(file_handler)

In debug mode the raw request and the serialized response are dumped at
DEBUG on the same logger.

=============================================================================
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .http.request import ParsedRequest


logger = logging.getLogger("tinyhttpd.access")


TIMESTAMP_FORMAT = "%d/%b/%Y:%H:%M:%S %z"


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Render ``moment`` (default: now) in UTC, e.g. ``19/Oct/2026:14:02:11 +0000``."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class AccessLogRecord:
    """One access log entry."""

    client_ip: str
    timestamp: str
    method: str
    path: str
    version: str
    status: int

    @classmethod
    def from_request(cls, request: ParsedRequest, status: int, timestamp: Optional[str] = None) -> "AccessLogRecord":
        return cls(
            client_ip=request.client_ip,
            timestamp=timestamp if timestamp is not None else format_timestamp(),
            method=request.method,
            path=request.decoded_path,
            version=request.version,
            status=int(status),
        )

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.version}" {self.status}'
        )


class AccessLog:
    """
    Writes access lines, plus request/response dumps when debugging.

    Usage:
        access_log = AccessLog(debug=config.debug)
        access_log.log_request(request, status=404)
        access_log.log_response(response_bytes)
    """

    def __init__(self, debug: bool = False):
        self.debug = debug

    def log_request(self, request: ParsedRequest, status: int) -> AccessLogRecord:
        record = AccessLogRecord.from_request(request, status)
        logger.info(record.to_text())
        if self.debug:
            logger.debug(f"Request: {request.raw_text}")
        return record

    def log_response(self, data: bytes):
        if self.debug:
            logger.debug(f"Response: {data.decode('utf-8', 'replace')}")
