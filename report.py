from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from analysis_core import AggregationState
from errors import UnsupportedDimension
from histogram import Bucket
from ranking import top_n
from records import Dimension, LogFormat, capabilities_for

# (dimension, title) in the order sections appear in a report; "{n}" is the top-N limit
SECTION_TITLES: List[Tuple[Dimension, str]] = [
    (Dimension.STATUS_CODE, "Response Codes"),
    (Dimension.METHOD, "Request Methods"),
    (Dimension.PATH, "Top {n} Requests (no query params)"),
    (Dimension.PATH_WITH_QUERY, "Top {n} Requests (with query params)"),
    (Dimension.USER_AGENT, "Top {n} User Agents"),
    (Dimension.REFERRER, "Top {n} Referrers"),
    (Dimension.CLIENT_IP, "Top {n} Client IPs"),
    (Dimension.BACKEND_ADDRESS, "Top {n} Backend Addresses (Cells & Platform VMs)"),
    (Dimension.X_FORWARDED_FOR, "Top {n} X-Forwarded-For IPs"),
    (Dimension.DESTINATION_HOST, "Top {n} Destination Hosts"),
    (Dimension.APP_GUID, "Top {n} Application UUIDs"),
    (Dimension.APP_INDEX, "Top {n} Application Indexes"),
    (Dimension.RESPONSE_TIME, "Response Times"),
    (Dimension.GOROUTER_TIME, "Gorouter Times"),
    (Dimension.ROUTER_ERROR, "Top {n} CF Router Errors"),
]

# shown in full regardless of the top-N limit
UNLIMITED = {Dimension.STATUS_CODE, Dimension.METHOD}


@dataclass
class ScalarSection:
    name: str
    title: str
    value: Any


@dataclass
class RankedSection:
    dimension: Dimension
    title: str
    rows: List[Tuple[Any, int]] = field(default_factory=list)


@dataclass
class HistogramSection:
    dimension: Dimension
    title: str
    buckets: List[Bucket] = field(default_factory=list)
    missing: int = 0

    @property
    def total(self) -> int:
        return sum(bucket.count for bucket in self.buckets)


Section = Union[ScalarSection, RankedSection, HistogramSection]


@dataclass
class Report:
    log_format: LogFormat
    top_n: int
    sections: List[Section] = field(default_factory=list)

    def section(self, key: Union[str, Dimension]) -> Optional[Section]:
        for section in self.sections:
            if isinstance(section, ScalarSection) and section.name == key:
                return section
            if not isinstance(section, ScalarSection) and section.dimension == key:
                return section
        return None

    def dimensions(self) -> List[Dimension]:
        return [s.dimension for s in self.sections if not isinstance(s, ScalarSection)]

    def as_dict(self) -> Dict[str, Any]:
        summary: Dict[str, Any] = {"format": self.log_format.value, "top": self.top_n}
        for section in self.sections:
            if isinstance(section, ScalarSection):
                value = section.value
                if section.name == "duration":
                    value = {"start": value[0].isoformat(), "end": value[1].isoformat()} if value else None
                summary[section.name] = value
            elif isinstance(section, HistogramSection):
                summary[section.dimension.value] = {
                    "buckets": [
                        {"from_ms": b.lower, "to_ms": b.upper, "count": b.count, "merged": b.merged}
                        for b in section.buckets
                    ],
                    "missing": section.missing,
                }
            else:
                summary[section.dimension.value] = [
                    {"value": key, "count": count} for key, count in section.rows
                ]
        return summary


class ReportBuilder:
    """
    Turns a finished ``AggregationState`` into report sections.

    Only dimensions the log format provides ever become sections; asking for
    any other one raises ``UnsupportedDimension``.
    """

    def __init__(self, log_format: LogFormat, top_n: int = 10, min_response_time_threshold: int = 100):
        self.log_format = LogFormat(log_format)
        self.capabilities = capabilities_for(self.log_format)
        self.top_n = top_n
        self.min_response_time_threshold = min_response_time_threshold

    def section_for(self, state: AggregationState, dimension: Dimension) -> Section:
        if dimension not in self.capabilities:
            raise UnsupportedDimension(dimension, self.log_format)

        title = dict(SECTION_TITLES)[dimension].format(n=self.top_n)
        if dimension.is_duration:
            histogram = state.histograms[dimension]
            return HistogramSection(
                dimension=dimension,
                title=title,
                buckets=histogram.collapse(self.min_response_time_threshold),
                missing=histogram.missing,
            )
        table = state.tables[dimension]
        limit = len(table) if dimension in UNLIMITED else self.top_n
        return RankedSection(
            dimension=dimension,
            title=title,
            rows=top_n(table, limit),
        )

    def build(self, state: AggregationState) -> Report:
        if state.log_format != self.log_format:
            raise ValueError(
                f"stats were gathered for '{state.log_format.value}' logs, not '{self.log_format.value}'"
            )

        report = Report(log_format=self.log_format, top_n=self.top_n)
        report.sections.append(ScalarSection("duration", "Duration", state.time_range))
        report.sections.append(ScalarSection("total_requests", "Total Requests", state.total_count))
        report.sections.append(ScalarSection("errors", "Total Errors", state.error_count))

        for dimension, _title in SECTION_TITLES:
            if dimension in self.capabilities:
                report.sections.append(self.section_for(state, dimension))
        return report


def build_report(
    state: AggregationState,
    log_format: LogFormat,
    top: int = 10,
    min_response_time_threshold: int = 100,
) -> Report:
    return ReportBuilder(log_format, top, min_response_time_threshold).build(state)
