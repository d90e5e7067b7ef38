import math
from datetime import datetime
from typing import Dict, Optional, Tuple, Union

from grammar import GrammarError, parse_line
from records import CanonicalRecord, LogFormat, ParseFailure


APACHE_TIME_FORMATS = ("%d/%b/%Y:%H:%M:%S %z",)
GOROUTER_TIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%d/%m/%Y:%H:%M:%S.%f %z",
    "%d/%m/%Y:%H:%M:%S %z",
)
CLOUD_CONTROLLER_TIME_FORMATS = ("%d/%b/%Y:%H:%M:%S %z", "%d/%b/%Y:%H:%M:%S.%f %z")


class FieldError(ValueError):
    pass


def optional(value: Optional[str]) -> Optional[str]:
    if value is None or value == "-":
        return None
    return value


def parse_timestamp(text: str, formats) -> datetime:
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise FieldError(f"invalid timestamp '{text}'")


def parse_seconds(name: str, text: Optional[str]) -> Optional[float]:
    text = optional(text)
    if text is None:
        return None
    try:
        value = float(text)
    except ValueError:
        raise FieldError(f"invalid {name} '{text}'") from None
    if not math.isfinite(value * 1000.0) or value < 0:
        raise FieldError(f"invalid {name} '{text}'")
    return value


def split_request(request: str) -> Tuple[Optional[str], str, str]:
    """
    Break a request line into (method, path, query).

    Request lines that are not ``METHOD TARGET PROTOCOL`` keep no method and
    are counted under their raw text.
    """
    parts = request.split()
    if len(parts) != 3:
        return None, request, ""
    method, target, _protocol = parts
    path, _, query = target.partition("?")
    return method, path, query


def host_part(address: Optional[str]) -> Optional[str]:
    """Strip the port from ``ip:port`` and ``[ipv6]:port`` addresses."""
    address = optional(address)
    if address is None:
        return None
    if address.startswith("["):
        end = address.find("]")
        return address[1:end] if end > 0 else address
    if address.count(":") == 1:
        return address.split(":", 1)[0]
    return address


class FormatAdapter:
    log_format: LogFormat
    time_formats = APACHE_TIME_FORMATS

    def parse(self, line: str) -> Union[CanonicalRecord, ParseFailure]:
        try:
            fields = parse_line(line, self.log_format)
        except GrammarError as err:
            return ParseFailure(line=line, reason=err.reason, position=err.position)

        try:
            return self.build(fields)
        except FieldError as err:
            return ParseFailure(line=line, reason=str(err))

    def build(self, fields: Dict[str, str]) -> CanonicalRecord:
        raise NotImplementedError

    def base_fields(self, fields: Dict[str, str]) -> dict:
        method, path, query = split_request(fields["request"])
        return {
            "log_format": self.log_format,
            "timestamp": parse_timestamp(fields["timestamp"], self.time_formats),
            "status_code": int(fields["status"]),
            "method": method,
            "path": path,
            "query": query,
        }


class CommonAdapter(FormatAdapter):
    log_format = LogFormat.COMMON

    def build(self, fields):
        return CanonicalRecord(**self.base_fields(fields))


class CombinedAdapter(FormatAdapter):
    log_format = LogFormat.COMBINED

    def build(self, fields):
        return CanonicalRecord(
            user_agent=optional(fields["user_agent"]),
            referrer=optional(fields["referrer"]),
            client_ip=optional(fields["client_ip"]),
            **self.base_fields(fields),
        )


class GorouterAdapter(FormatAdapter):
    log_format = LogFormat.GOROUTER
    time_formats = GOROUTER_TIME_FORMATS

    def build(self, fields):
        return CanonicalRecord(
            user_agent=optional(fields["user_agent"]),
            referrer=optional(fields["referrer"]),
            client_ip=host_part(fields["remote_addr"]),
            x_forwarded_for=optional(fields["x_forwarded_for"]),
            backend_address=host_part(fields["backend_addr"]),
            destination_host=optional(fields["request_host"]),
            app_guid=optional(fields["app_id"]),
            app_index=optional(fields.get("app_index")),
            router_error=optional(fields.get("x_cf_routererror")),
            response_time=parse_seconds("response_time", fields["response_time"]),
            gorouter_time=parse_seconds("gorouter_time", fields.get("gorouter_time")),
            **self.base_fields(fields),
        )


class CloudControllerAdapter(FormatAdapter):
    log_format = LogFormat.CLOUD_CONTROLLER
    time_formats = CLOUD_CONTROLLER_TIME_FORMATS

    def build(self, fields):
        return CanonicalRecord(
            user_agent=optional(fields["user_agent"]),
            referrer=optional(fields["referrer"]),
            x_forwarded_for=optional(fields["x_forwarded_for"].strip()),
            response_time=parse_seconds("response_time", fields["response_time"]),
            **self.base_fields(fields),
        )


ADAPTERS = {
    LogFormat.COMMON: CommonAdapter(),
    LogFormat.COMBINED: CombinedAdapter(),
    LogFormat.GOROUTER: GorouterAdapter(),
    LogFormat.CLOUD_CONTROLLER: CloudControllerAdapter(),
}


def get_adapter(log_format: LogFormat) -> FormatAdapter:
    return ADAPTERS[LogFormat(log_format)]


def parse(line: str, log_format: LogFormat) -> Union[CanonicalRecord, ParseFailure]:
    return get_adapter(log_format).parse(line)
