import sys
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, Union

from adapters import get_adapter
from records import (
    NONE_KEY,
    CanonicalRecord,
    Dimension,
    LogFormat,
    ParseFailure,
    duration_dimensions,
    frequency_dimensions,
)
from histogram import Histogram


@dataclass
class AggregationState:
    log_format: LogFormat
    total_count: int = 0
    error_count: int = 0
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    tables: Dict[Dimension, Counter] = field(default_factory=dict)
    histograms: Dict[Dimension, Histogram] = field(default_factory=dict)

    @property
    def time_range(self):
        if self.first_seen is None:
            return None
        return self.first_seen, self.last_seen


def new_stats(log_format: LogFormat) -> AggregationState:
    log_format = LogFormat(log_format)
    return AggregationState(
        log_format=log_format,
        tables={dim: Counter() for dim in frequency_dimensions(log_format)},
        histograms={dim: Histogram() for dim in duration_dimensions(log_format)},
    )


def update_stats(stats: AggregationState, record: CanonicalRecord) -> None:
    stats.total_count += 1

    if stats.first_seen is None or record.timestamp < stats.first_seen:
        stats.first_seen = record.timestamp
    if stats.last_seen is None or record.timestamp > stats.last_seen:
        stats.last_seen = record.timestamp

    for dim, table in stats.tables.items():
        value = record.value(dim)
        table[NONE_KEY if value is None else value] += 1

    for dim, histogram in stats.histograms.items():
        histogram.add(record.value(dim))


def merge_stats(target: AggregationState, incoming: AggregationState) -> AggregationState:
    if target.log_format != incoming.log_format:
        raise ValueError(
            f"cannot merge '{incoming.log_format.value}' stats into '{target.log_format.value}' stats"
        )

    target.total_count += incoming.total_count
    target.error_count += incoming.error_count

    if incoming.first_seen is not None:
        if target.first_seen is None or incoming.first_seen < target.first_seen:
            target.first_seen = incoming.first_seen
    if incoming.last_seen is not None:
        if target.last_seen is None or incoming.last_seen > target.last_seen:
            target.last_seen = incoming.last_seen

    for dim, table in incoming.tables.items():
        target.tables[dim].update(table)

    for dim, histogram in incoming.histograms.items():
        target.histograms[dim].merge(histogram)

    return target


def print_failure(failure: ParseFailure) -> None:
    print(f"Parse error: '{failure.line}' ({failure.describe()})", file=sys.stderr)


class Aggregator:
    """Single-pass reducer from access log lines to an ``AggregationState``."""

    def __init__(
        self,
        log_format: LogFormat,
        ignore_parse_errors: bool = False,
        diagnostics: Callable[[ParseFailure], None] = print_failure,
    ):
        self.log_format = LogFormat(log_format)
        self.adapter = get_adapter(self.log_format)
        self.ignore_parse_errors = ignore_parse_errors
        self.diagnostics = diagnostics
        self.state = new_stats(self.log_format)

    def ingest(self, item: Union[CanonicalRecord, ParseFailure]) -> None:
        if isinstance(item, ParseFailure):
            self.state.error_count += 1
            if not self.ignore_parse_errors:
                self.diagnostics(item)
            return
        update_stats(self.state, item)

    def ingest_line(self, line: str) -> None:
        self.ingest(self.adapter.parse(line.rstrip("\r\n")))

    @property
    def lines_seen(self) -> int:
        return self.state.total_count + self.state.error_count

    def ingest_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.ingest_line(line)
