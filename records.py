from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional


NONE_KEY = "<none>"


class LogFormat(str, Enum):
    COMMON = "common"
    COMBINED = "combined"
    GOROUTER = "gorouter"
    CLOUD_CONTROLLER = "cloud_controller"


class Dimension(Enum):
    STATUS_CODE = "status_code"
    METHOD = "method"
    PATH = "path"
    PATH_WITH_QUERY = "path_with_query"
    USER_AGENT = "user_agent"
    REFERRER = "referrer"
    CLIENT_IP = "client_ip"
    X_FORWARDED_FOR = "x_forwarded_for"
    BACKEND_ADDRESS = "backend_address"
    DESTINATION_HOST = "destination_host"
    APP_GUID = "app_guid"
    APP_INDEX = "app_index"
    ROUTER_ERROR = "router_error"
    RESPONSE_TIME = "response_time"
    GOROUTER_TIME = "gorouter_time"

    @property
    def is_duration(self) -> bool:
        return self in DURATION_DIMENSIONS


DURATION_DIMENSIONS = frozenset({Dimension.RESPONSE_TIME, Dimension.GOROUTER_TIME})

_BASE = frozenset({
    Dimension.STATUS_CODE,
    Dimension.METHOD,
    Dimension.PATH,
    Dimension.PATH_WITH_QUERY,
})

CAPABILITIES: Dict[LogFormat, FrozenSet[Dimension]] = {
    LogFormat.COMMON: _BASE,
    LogFormat.COMBINED: _BASE | {
        Dimension.USER_AGENT,
        Dimension.REFERRER,
        Dimension.CLIENT_IP,
    },
    LogFormat.GOROUTER: frozenset(Dimension),
    LogFormat.CLOUD_CONTROLLER: _BASE | {
        Dimension.USER_AGENT,
        Dimension.REFERRER,
        Dimension.X_FORWARDED_FOR,
        Dimension.RESPONSE_TIME,
    },
}


def capabilities_for(log_format: LogFormat) -> FrozenSet[Dimension]:
    return CAPABILITIES[LogFormat(log_format)]


def frequency_dimensions(log_format: LogFormat):
    """Supported dimensions tallied in a Counter, in declaration order."""
    caps = capabilities_for(log_format)
    return [dim for dim in Dimension if dim in caps and not dim.is_duration]


def duration_dimensions(log_format: LogFormat):
    caps = capabilities_for(log_format)
    return [dim for dim in Dimension if dim in caps and dim.is_duration]


@dataclass(frozen=True)
class CanonicalRecord:
    """
    One normalized access log line.

    Fields a format cannot provide stay ``None``; a ``-`` placeholder in a
    field the format does provide is also ``None``.
    """
    log_format: LogFormat
    timestamp: datetime
    path: str
    status_code: int
    query: str = ""
    method: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    client_ip: Optional[str] = None
    x_forwarded_for: Optional[str] = None
    backend_address: Optional[str] = None
    destination_host: Optional[str] = None
    app_guid: Optional[str] = None
    app_index: Optional[str] = None
    router_error: Optional[str] = None
    response_time: Optional[float] = None
    gorouter_time: Optional[float] = None

    @property
    def path_with_query(self) -> str:
        if self.query:
            return f"{self.path}?{self.query}"
        return self.path

    def value(self, dimension: Dimension):
        if dimension is Dimension.PATH_WITH_QUERY:
            return self.path_with_query
        return getattr(self, dimension.value)


@dataclass(frozen=True)
class ParseFailure:
    line: str
    reason: str
    position: Optional[int] = None

    def describe(self) -> str:
        if self.position is None:
            return self.reason
        return f"{self.reason} (column {self.position + 1})"
