import argparse
import sys

from structlog import get_logger

from statsd_instrument.config.loader import load_config, summarize_config
from statsd_instrument.emitter import MetricEmitter
from statsd_instrument.errors import StatsDError
from statsd_instrument.utils.logging import RENDERERS, configure_logging

logger = get_logger("cli")

COMMANDS = ("increment", "gauge", "measure", "histogram")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="statsd-instrument", description="Emit a single StatsD metric")
    parser.add_argument("--config", help="YAML/JSON settings file")
    parser.add_argument("--server", help="host:port of the StatsD daemon")
    parser.add_argument("--mode", help="production sends datagrams, anything else logs them")
    parser.add_argument("--implementation", choices=["statsd", "statsite", "datadog"])
    parser.add_argument("--prefix")
    parser.add_argument("--sample-rate", type=float, dest="sample_rate")
    parser.add_argument("--tag", action="append", dest="tags", help="repeatable, datadog only")
    parser.add_argument("--log-level", default="info", dest="log_level")
    parser.add_argument("--log-format", choices=RENDERERS, default="json", dest="log_format")

    subparsers = parser.add_subparsers(dest="command", help="Metric type")
    for command in COMMANDS:
        sub = subparsers.add_parser(command)
        sub.add_argument("key")
        sub.add_argument("value", type=float, nargs="?" if command == "increment" else None)
    return parser


def _overrides(args: argparse.Namespace) -> dict:
    overrides = {}
    if args.server:
        overrides["server"] = args.server
    if args.mode:
        overrides["mode"] = args.mode
    if args.implementation:
        overrides["implementation"] = args.implementation
    if args.prefix:
        overrides["prefix"] = args.prefix
    return overrides


def _number(value: float):
    return int(value) if value is not None and float(value).is_integer() else value


def emit(emitter: MetricEmitter, args: argparse.Namespace) -> None:
    value = _number(args.value)
    if args.command == "increment":
        emitter.increment(args.key, 1 if value is None else value, args.sample_rate, args.tags)
    elif args.command == "gauge":
        emitter.gauge(args.key, value, args.sample_rate, args.tags)
    elif args.command == "measure":
        emitter.measure(args.key, value, args.sample_rate, args.tags)
    elif args.command == "histogram":
        emitter.histogram(args.key, value, args.sample_rate, args.tags)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    try:
        configure_logging(args.log_level, args.log_format)
    except ValueError as exc:
        parser.error(str(exc))
    try:
        config, _ = load_config(args.config, _overrides(args))
        logger.debug("StatsD settings", summary=summarize_config(config))
        emitter = MetricEmitter(config)
        try:
            emit(emitter, args)
        finally:
            emitter.close()
    except StatsDError as exc:
        logger.error("StatsD emit failed", error=str(exc))
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
