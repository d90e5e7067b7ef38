import re
from typing import Dict, List, Optional, Tuple

from records import LogFormat


class GrammarError(ValueError):
    """A line does not follow the layout of its access log format."""

    def __init__(self, reason: str, position: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.position = position


class Token:
    def __init__(self, label: str, pattern: str, field: Optional[str] = None):
        self.label = label
        self.pattern = re.compile(pattern)
        self.field = field


def field(name: str, pattern: str, label: Optional[str] = None) -> Token:
    return Token(label or name, pattern, name)


QUOTED = r'"(?P<v>(?:[^"\\]|\\.)*)"'
BRACKETED = r"\[(?P<v>[^\]]+)\]"
WORD = r"(?P<v>\S+)"
STATUS = r"(?P<v>\d{3})(?!\S)"
BYTES = r"(?P<v>\d+|-)(?!\S)"

SP = Token("whitespace", r"\s+")
DASH = Token("'-'", r"-(?!\S)")

KV_PAIR_RE = re.compile(r'(?P<key>\w+):(?:"(?P<quoted>(?:[^"\\]|\\.)*)"|(?P<bare>\S*))')
ESCAPE_RE = re.compile(r"\\(.)")

COMMON_TOKENS = [
    field("client_ip", WORD), SP,
    field("ident", WORD), SP,
    field("user", WORD), SP,
    field("timestamp", BRACKETED), SP,
    field("request", QUOTED, "quoted request"), SP,
    field("status", STATUS, "status code"), SP,
    field("bytes_sent", BYTES, "byte count"),
]

COMBINED_TOKENS = COMMON_TOKENS + [
    SP, field("referrer", QUOTED, "quoted referrer"),
    SP, field("user_agent", QUOTED, "quoted user agent"),
]

GOROUTER_TOKENS = [
    field("request_host", WORD, "request host"), SP,
    DASH, SP,
    field("timestamp", BRACKETED), SP,
    field("request", QUOTED, "quoted request"), SP,
    field("status", STATUS, "status code"), SP,
    field("bytes_received", BYTES, "bytes received"), SP,
    field("bytes_sent", BYTES, "bytes sent"), SP,
    field("referrer", QUOTED, "quoted referrer"), SP,
    field("user_agent", QUOTED, "quoted user agent"), SP,
    field("remote_addr", QUOTED, "quoted remote address"), SP,
    field("backend_addr", QUOTED, "quoted backend address"),
]
GOROUTER_REQUIRED = ("x_forwarded_for", "vcap_request_id", "response_time", "app_id")

CLOUD_CONTROLLER_TOKENS = [
    field("request_host", WORD, "request host"), SP,
    DASH, SP,
    field("timestamp", BRACKETED), SP,
    field("request", QUOTED, "quoted request"), SP,
    field("status", STATUS, "status code"), SP,
    field("bytes_sent", BYTES, "bytes sent"), SP,
    field("referrer", QUOTED, "quoted referrer"), SP,
    field("user_agent", QUOTED, "quoted user agent"), SP,
    field("x_forwarded_for", r"(?P<v>.*?)(?=\s+vcap_request_id:)", "x_forwarded_for list"),
]
CLOUD_CONTROLLER_REQUIRED = ("vcap_request_id", "response_time")


def _unescape(value: str) -> str:
    return ESCAPE_RE.sub(r"\1", value)


def match_tokens(tokens: List[Token], line: str, pos: int = 0) -> Tuple[Dict[str, str], int]:
    fields: Dict[str, str] = {}
    for token in tokens:
        match = token.pattern.match(line, pos)
        if not match:
            raise GrammarError(f"expected {token.label}", pos)
        if token.field:
            value = match.group("v")
            if token.pattern.pattern.startswith('"'):
                value = _unescape(value)
            fields[token.field] = value
        pos = match.end()
    return fields, pos


def _expect_end(line: str, pos: int) -> None:
    if line[pos:].strip():
        raise GrammarError("unexpected trailing data", pos)


def _key_values(line: str, pos: int, required) -> Dict[str, str]:
    pairs: Dict[str, str] = {}
    for match in KV_PAIR_RE.finditer(line, pos):
        key = match.group("key")
        if match.group("quoted") is not None:
            pairs[key] = _unescape(match.group("quoted"))
        else:
            pairs[key] = match.group("bare")
    for key in required:
        if key not in pairs:
            raise GrammarError(f"missing '{key}' field", pos)
    return pairs


def parse_common(line: str) -> Dict[str, str]:
    fields, pos = match_tokens(COMMON_TOKENS, line)
    _expect_end(line, pos)
    return fields


def parse_combined(line: str) -> Dict[str, str]:
    fields, pos = match_tokens(COMBINED_TOKENS, line)
    _expect_end(line, pos)
    return fields


def parse_gorouter(line: str) -> Dict[str, str]:
    fields, pos = match_tokens(GOROUTER_TOKENS, line)
    extras = _key_values(line, pos, GOROUTER_REQUIRED)
    # extra headers never override the positional fields
    extras.update(fields)
    return extras


def parse_cloud_controller(line: str) -> Dict[str, str]:
    fields, pos = match_tokens(CLOUD_CONTROLLER_TOKENS, line)
    extras = _key_values(line, pos, CLOUD_CONTROLLER_REQUIRED)
    extras.update(fields)
    return extras


PARSERS = {
    LogFormat.COMMON: parse_common,
    LogFormat.COMBINED: parse_combined,
    LogFormat.GOROUTER: parse_gorouter,
    LogFormat.CLOUD_CONTROLLER: parse_cloud_controller,
}


def parse_line(line: str, log_format: LogFormat) -> Dict[str, str]:
    """
    Split one access log line into raw string fields.

    Raises ``GrammarError`` with the failing column when the line does not
    follow the layout of ``log_format``.
    """
    return PARSERS[LogFormat(log_format)](line)
