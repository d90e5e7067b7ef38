import logging
from typing import List, Sequence

from analysis_core import AggregationState, Aggregator, merge_stats, new_stats
from errors import NoInputAvailable
from report import build_report
from serial_analyzer import analyze_paths, build_parser, configure_logging, write_outputs

logger = logging.getLogger(__name__)


def shard_paths(paths: Sequence[str], rank: int, world_size: int) -> List[str]:
    """Deal files round-robin so every rank gets a disjoint share."""
    return list(paths[rank::world_size])


def analyze_shard(paths: Sequence[str], log_format: str, ignore_parse_errors: bool):
    aggregator = Aggregator(log_format, ignore_parse_errors=ignore_parse_errors)
    try:
        readable = analyze_paths(paths, aggregator)
    except NoInputAvailable as err:
        logger.error("%s", err)
        readable = 0
    return aggregator.state, readable


def combine_shards(log_format: str, shards) -> AggregationState:
    merged = new_stats(log_format)
    for state, _readable in shards:
        merge_stats(merged, state)
    return merged


def parse_args(argv=None):
    parser = build_parser("Parallel MPI access log analyzer (files are sharded across all ranks)")
    return parser.parse_args(argv)


def main(argv=None):
    from mpi4py import MPI

    args = parse_args(argv)
    configure_logging(args.verbose)

    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()
    world_size = comm.Get_size()

    local = shard_paths(args.access_logs, rank, world_size)
    logger.debug("Rank %d of %d handles %d file(s)", rank, world_size, len(local))
    shard = analyze_shard(local, args.format, args.ignore_parse_errors)

    gathered = comm.gather(shard, root=0)
    if rank != 0:
        return

    if not sum(readable for _state, readable in gathered):
        raise SystemExit(f"top-logs: none of the access logs could be read: {', '.join(args.access_logs)}")

    merged = combine_shards(args.format, gathered)
    report = build_report(merged, args.format, args.top, args.min_response_time_threshold)
    write_outputs(report, args)


if __name__ == "__main__":
    main()
