import argparse
import gzip
import json
import logging
import sys
from pathlib import Path

from analysis_core import Aggregator
from errors import NoInputAvailable
from records import LogFormat
from render import build_plot, render_report
from report import build_report

logger = logging.getLogger(__name__)


def open_stream(path: str):
    if path.strip() == "-":
        return sys.stdin
    if path.endswith(".gz"):
        return gzip.open(path, "rt", encoding="utf-8", errors="replace")
    return open(path, "r", encoding="utf-8", errors="replace")


def analyze_file(path: str, aggregator: Aggregator) -> None:
    handle = open_stream(path)
    try:
        aggregator.ingest_lines(handle)
    finally:
        if handle is not sys.stdin:
            handle.close()


def analyze_paths(paths, aggregator: Aggregator) -> int:
    """Feed every readable file to ``aggregator``; return how many could be read."""
    readable = 0
    for path in paths:
        logger.debug("Processing %s", path)
        seen = aggregator.lines_seen
        try:
            analyze_file(path, aggregator)
        except (OSError, EOFError) as err:
            read = aggregator.lines_seen - seen
            if not read:
                logger.error("Failed reading %s: %s", path, err)
                continue
            # lines read before the failure stay counted
            logger.error("Failed reading %s after %d line(s): %s", path, read, err)
        readable += 1

    if paths and not readable:
        raise NoInputAvailable(f"none of the access logs could be read: {', '.join(paths)}")
    return readable


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be zero or more, got {value}")
    return number


def build_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("access_logs", nargs="+", metavar="ACCESS_LOG",
                        help="Access logs to process or '-' (a dash) to read from STDIN.")
    parser.add_argument("-f", "--format", required=True, choices=[f.value for f in LogFormat],
                        help="Access log format.")
    parser.add_argument("-t", "--top", type=positive_int, default=10, help="Number of results to display.")
    parser.add_argument("-m", "--min-response-time-threshold", type=non_negative_int, default=100,
                        help="Minimum number of requests for a response time bucket to be displayed "
                             "on its own. Smaller buckets are grouped together.")
    parser.add_argument("-i", "--ignore-parse-errors", action="store_true", help="Don't log any parsing error.")
    parser.add_argument("-o", "--output", help="Also write the report as JSON to this path.")
    parser.add_argument("--plot", help="Optional path to write a summary plot (PNG).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def parse_args(argv=None):
    parser = build_parser("Parses access logs and prints stats helpful for debugging/troubleshooting.")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def write_outputs(report, args) -> None:
    render_report(report)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as handle:
            json.dump(report.as_dict(), handle, indent=2)
        logger.info("JSON summary written to %s", output_path)

    if args.plot:
        build_plot(report, Path(args.plot))
        logger.info("Plot written to %s", args.plot)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose)

    aggregator = Aggregator(args.format, ignore_parse_errors=args.ignore_parse_errors)
    try:
        analyze_paths(args.access_logs, aggregator)
    except NoInputAvailable as err:
        raise SystemExit(f"top-logs: {err}")

    report = build_report(aggregator.state, args.format, args.top, args.min_response_time_threshold)
    write_outputs(report, args)


if __name__ == "__main__":
    main()
