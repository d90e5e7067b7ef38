import argparse
import random
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

from records import LogFormat

# Traffic profile shared by every format; format specific fields are layered on top.
PATHS = [
    ("/v2/info", 0.20),
    ("/v2/apps", 0.15),
    ("/v3/apps?per_page=50", 0.10),
    ("/v3/processes", 0.08),
    ("/v2/spaces/summary", 0.07),
    ("/login", 0.08),
    ("/health", 0.12),
    ("/static/app.js", 0.08),
    ("/search?q=logs", 0.07),
    ("/metrics", 0.05),
]
METHODS = [("GET", 0.70), ("POST", 0.18), ("PUT", 0.07), ("DELETE", 0.05)]
STATUSES = [(200, 0.80), (201, 0.05), (302, 0.03), (404, 0.06), (500, 0.04), (502, 0.02)]
USER_AGENTS = [
    ("curl/7.58.0", 0.30),
    ("Mozilla/5.0 (X11; Linux x86_64) Gecko/20100101 Firefox/115.0", 0.35),
    ("cf/6.53.0 (go1.15; amd64 linux)", 0.25),
    ("-", 0.10),
]
REFERRERS = [("-", 0.60), ("https://example.com/", 0.25), ("https://apps.example.com/login", 0.15)]
HOSTS = [("api.sys.example.com", 0.50), ("app1.apps.example.com", 0.30), ("app2.apps.example.com", 0.20)]
ROUTER_ERRORS = [("-", 0.92), ("endpoint_failure", 0.05), ("unknown_route", 0.03)]
# (seconds range, weight)
RESPONSE_TIMES = [((0.0005, 0.01), 0.45), ((0.01, 0.2), 0.40), ((0.2, 2.0), 0.12), ((2.0, 30.0), 0.03)]

APP_GUIDS = [str(uuid.UUID(int=n)) for n in range(1, 6)]


def weighted_choice(options):
    r = random.random()
    cumulative = 0.0
    for value, weight in options:
        cumulative += weight
        if r <= cumulative:
            return value
    return options[-1][0]


def random_ip():
    return ".".join(str(random.randint(1, 254)) for _ in range(4))


def random_seconds():
    low, high = weighted_choice(RESPONSE_TIMES)
    return random.uniform(low, high)


def random_request():
    return f"{weighted_choice(METHODS)} {weighted_choice(PATHS)} HTTP/1.1"


def common_line(dt):
    timestamp = dt.strftime("%d/%b/%Y:%H:%M:%S %z")
    return f"{random_ip()} - - [{timestamp}] \"{random_request()}\" {weighted_choice(STATUSES)} {random.randint(0, 8000)}"


def combined_line(dt):
    return f"{common_line(dt)} \"{weighted_choice(REFERRERS)}\" \"{weighted_choice(USER_AGENTS)}\""


def gorouter_line(dt):
    timestamp = dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}" + dt.strftime("%z")
    client = random_ip()
    return (
        f"{weighted_choice(HOSTS)} - [{timestamp}] \"{random_request()}\" {weighted_choice(STATUSES)} "
        f"{random.randint(0, 500)} {random.randint(0, 8000)} \"{weighted_choice(REFERRERS)}\" "
        f"\"{weighted_choice(USER_AGENTS)}\" \"{client}:{random.randint(1024, 65535)}\" "
        f"\"10.0.{random.randint(0, 3)}.{random.randint(1, 20)}:61000\" "
        f"x_forwarded_for:\"{client}, 10.0.0.{random.randint(1, 9)}\" x_forwarded_proto:\"https\" "
        f"vcap_request_id:\"{uuid.UUID(int=random.getrandbits(128))}\" "
        f"response_time:{random_seconds():.6f} gorouter_time:{random.uniform(0.0001, 0.002):.6f} "
        f"app_id:\"{random.choice(APP_GUIDS)}\" app_index:\"{random.randint(0, 3)}\" "
        f"x_cf_routererror:\"{weighted_choice(ROUTER_ERRORS)}\" x_b3_traceid:\"{random.getrandbits(64):016x}\""
    )


def cloud_controller_line(dt):
    timestamp = dt.strftime("%d/%b/%Y:%H:%M:%S %z")
    return (
        f"api.sys.example.com - [{timestamp}] \"{random_request()}\" {weighted_choice(STATUSES)} "
        f"{random.randint(0, 8000)} \"{weighted_choice(REFERRERS)}\" \"{weighted_choice(USER_AGENTS)}\" "
        f"{random_ip()}, 10.0.0.{random.randint(1, 9)} "
        f"vcap_request_id:{uuid.UUID(int=random.getrandbits(128))} response_time:{random_seconds():.3f}"
    )


LINE_BUILDERS = {
    LogFormat.COMMON: common_line,
    LogFormat.COMBINED: combined_line,
    LogFormat.GOROUTER: gorouter_line,
    LogFormat.CLOUD_CONTROLLER: cloud_controller_line,
}


def invalid_line():
    return random.choice([
        "",
        "garbage in the access log",
        "\\x16\\x03\\x01\\x02\\x00\\x01\\x00\\x01\\xfc\\x03\\x03",
        "127.0.0.1 - - [not a date] \"GET / HTTP/1.1\" 200 12",
    ])


def generate_lines(log_format, rows, invalid_ratio=0.0, span_hours=24, base_time=None):
    build = LINE_BUILDERS[LogFormat(log_format)]
    if base_time is None:
        base_time = datetime.now(timezone.utc).replace(microsecond=0)
    span = int(span_hours * 3600)
    for _ in range(rows):
        if invalid_ratio and random.random() < invalid_ratio:
            yield invalid_line()
            continue
        offset = timedelta(seconds=random.randint(0, span), milliseconds=random.randint(0, 999))
        yield build(base_time - offset)


def write_log(log_format, rows, output, invalid_ratio, span_hours):
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        for line in generate_lines(log_format, rows, invalid_ratio, span_hours):
            handle.write(line + "\n")
    return path


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate synthetic access logs in any supported format.")
    parser.add_argument("--format", required=True, choices=[f.value for f in LogFormat], help="Access log format.")
    parser.add_argument("--rows", type=int, default=5000, help="Number of lines to write.")
    parser.add_argument("--output", default="logs/access.log", help="Where to write the log file.")
    parser.add_argument("--invalid-ratio", type=float, default=0.0, help="Share of lines that should not parse.")
    parser.add_argument("--span-hours", type=int, default=24, help="Time window for timestamps.")
    parser.add_argument("--seed", type=int, help="RNG seed for reproducibility.")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if args.seed is not None:
        random.seed(args.seed)

    if not 0.0 <= args.invalid_ratio <= 1.0:
        raise SystemExit(f"--invalid-ratio must be between 0 and 1 (got {args.invalid_ratio})")

    path = write_log(args.format, args.rows, args.output, args.invalid_ratio, args.span_hours)
    print(f"Generated {args.rows} {args.format} lines in {path.resolve()}")


if __name__ == "__main__":
    main()
