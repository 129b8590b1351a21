"""log-bench: group Rails request logs and follow them live."""

import argparse
import logging
import os
import signal
import sys
from itertools import islice

from logbench.collection import Collection
from logbench.config import LOGGER_TYPES, load_config, load_yaml_config
from logbench.correlation import CorrelationTable
from logbench.formatter import format_related, get_formatter
from logbench.log_file import LogFile
from logbench.monitor import Monitor
from logbench.parser import LineParser

LOG_FORMAT = "%(asctime)s [LOGBENCH] %(levelname)s %(message)s"
DEBUG_LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"

logger = logging.getLogger(__name__)

STATUS_CLASSES = {
    "1xx": range(100, 200),
    "2xx": range(200, 300),
    "3xx": range(300, 400),
    "4xx": range(400, 500),
    "5xx": range(500, 600),
}


def parse_status_range(value: str) -> range:
    """'4xx' -> range(400, 500); '200-299' -> range(200, 300) (inclusive bounds)."""
    text = value.strip().lower()
    if text in STATUS_CLASSES:
        return STATUS_CLASSES[text]
    low, sep, high = text.partition("-")
    try:
        low_code = int(low)
        high_code = int(high) if sep else low_code
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid status {value!r} (use 2xx/4xx/5xx, a code, or LOW-HIGH)"
        ) from None
    if high_code < low_code:
        raise argparse.ArgumentTypeError(f"invalid status range {value!r}")
    return range(low_code, high_code + 1)


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="log-bench",
        description="Group Rails request logs with their SQL, cache and job lines.",
    )
    parser.add_argument(
        "log_file", nargs="?", default=None,
        help="Rails log file (default: log/development.log)",
    )
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument(
        "--logger-type", choices=LOGGER_TYPES, default=None,
        help="Log format: lograge (JSON) or semantic_logger (JSON or human-readable)",
    )
    parser.add_argument("--poll-interval", type=float, default=None,
                        help="Seconds between file checks in --follow mode")
    parser.add_argument("--method", help="Only requests with this HTTP method")
    parser.add_argument("--path", help="Only requests whose path contains this text")
    parser.add_argument("--status", type=parse_status_range,
                        help="Status class (2xx, 4xx, 5xx) or inclusive range LOW-HIGH")
    parser.add_argument("--slow", type=float, metavar="MS",
                        help="Only requests slower than MS milliseconds")
    parser.add_argument("--sort", choices=["timestamp", "duration"], default="timestamp",
                        help="Sort order (default: timestamp)")
    parser.add_argument("--lines", type=int, help="Limit output to N requests")
    parser.add_argument("--output", choices=["text", "json"], default="text",
                        help="Output format (default: text)")
    parser.add_argument("--color", action="store_true", help="Colorize status codes (ANSI)")
    parser.add_argument("--related", action="store_true",
                        help="Print the related log lines under each request")
    parser.add_argument("--stats", action="store_true",
                        help="Show statistics instead of requests")
    parser.add_argument("--follow", action="store_true",
                        help="Follow the log file and print requests as they complete")
    parser.add_argument("--debug-log", default=None, help="Also write debug logs to this file")
    return parser


def configure_logging(debug_log: str | None = None):
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.INFO)
    handlers = [stream_handler]
    if debug_log:
        file_handler = logging.FileHandler(debug_log)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DEBUG_LOG_FORMAT))
        handlers.append(file_handler)
    logging.basicConfig(
        level=logging.DEBUG if debug_log else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def apply_filters(collection: Collection, args) -> Collection:
    if args.method:
        collection = collection.filter_by_method(args.method)
    if args.path:
        collection = collection.filter_by_path(args.path)
    if args.status is not None:
        collection = collection.filter_by_status(args.status)
    if args.slow is not None:
        collection = collection.slow_requests(args.slow)
    return collection


def print_requests(requests, args):
    formatter = get_formatter(output_format=args.output, color=args.color)
    for request in requests:
        print(formatter(request), flush=True)
        if args.related and args.output == "text":
            for line in format_related(request):
                print(line, flush=True)


def run_once(args, config, parser: LineParser) -> int:
    if not os.path.isfile(config.log_file):
        print(f"Error: log file not found: {config.log_file}", file=sys.stderr)
        return 1

    collection = apply_filters(LogFile(config.log_file).requests(parser), args)

    if args.stats:
        from logbench.stats import compute_stats, format_stats_json, format_stats_text
        stats = compute_stats(collection)
        if args.output == "json":
            print(format_stats_json(stats))
        else:
            print(format_stats_text(stats))
        return 0

    if args.sort == "duration":
        collection = collection.sort_by_duration()
    else:
        collection = collection.sort_by_timestamp()

    requests = iter(collection)
    if args.lines:
        requests = islice(requests, args.lines)
    print_requests(requests, args)
    return 0


def run_follow(args, config, parser: LineParser) -> int:
    if not os.path.exists(config.log_file):
        logger.warning("Log file %s does not exist yet, waiting for it", config.log_file)

    def on_requests(requests):
        print_requests(apply_filters(Collection(requests), args), args)

    monitor = Monitor(
        LogFile(config.log_file, from_end=True),
        parser,
        poll_interval=config.poll_interval,
        on_requests=on_requests,
    )

    def _signal_handler(sig, frame):
        logger.info("Shutdown signal received, stopping...")
        monitor.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    monitor.start()
    logger.info("Following %s (%s). Press Ctrl+C to stop.", config.log_file, config.logger_type)
    while monitor.running:
        monitor.join(timeout=0.5)
    monitor.join(timeout=5)
    return 0


def run(args) -> int:
    if args.follow and args.stats:
        print("Error: --follow and --stats cannot be used together", file=sys.stderr)
        return 1

    try:
        config = load_config(args, load_yaml_config(args.config))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(config.debug_log)
    parser = LineParser(CorrelationTable(config.job_table_limit), config.logger_type)

    if args.follow:
        return run_follow(args, config, parser)
    return run_once(args, config, parser)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except KeyboardInterrupt:
        return 0
    except BrokenPipeError:
        return 0


if __name__ == "__main__":
    sys.exit(main())
