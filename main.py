#!/usr/bin/env python3
"""
CLI application for running collectors and sending their gauges to a StatsD collector.
"""
import argparse
import importlib
import inspect
import json
import logging
import pkgutil
import sys
import time
from typing import List, Dict, Any, Optional, Type, Tuple

from statsd_sdk import config as sdk_config
from statsd_sdk.collector import Collector
from statsd_sdk.errors import StatsdError
from statsd_sdk.metrics_manager import MetricsManager
from statsd_sdk.statsd_client import StatsdClient

# Setup logging
logger = logging.getLogger(__name__)


class CollectorRegistry:
    """Maps collector type names (``system`` for ``SystemCollector``) to collector classes."""

    def __init__(self):
        self.collectors: Dict[str, Type[Collector]] = {}

    def discover_collectors(self, package_name: str = 'collectors') -> None:
        """Import every module under the collectors package and register its collectors."""
        package = importlib.import_module(package_name)
        for module_info in pkgutil.walk_packages(package.__path__, package.__name__ + '.',
                                                 onerror=self._import_failed):
            if module_info.ispkg:
                continue
            try:
                module = importlib.import_module(module_info.name)
            except ImportError as e:
                logger.warning("Skipping collector module %s: %s", module_info.name, e)
                continue
            self.register_module(module)

    @staticmethod
    def _import_failed(name: str) -> None:
        logger.warning("Could not import collector package %s", name)

    def register_module(self, module) -> None:
        for _, cls in inspect.getmembers(module, inspect.isclass):
            if issubclass(cls, Collector) and cls is not Collector and not inspect.isabstract(cls):
                self.register(cls)

    def register(self, cls: Type[Collector]) -> str:
        collector_type = collector_type_name(cls.__name__)
        self.collectors[collector_type] = cls
        logger.debug("Registered collector %s (%s)", collector_type, cls.__name__)
        return collector_type

    def get_collector_class(self, collector_type: str) -> Optional[Type[Collector]]:
        return self.collectors.get(collector_type_name(collector_type))

    def get_available_collectors(self) -> List[str]:
        return sorted(self.collectors)


def collector_type_name(name: str) -> str:
    """``SystemCollector``, ``systemcollector`` and ``system`` all name the same type."""
    name = name.strip().lower()
    if name.endswith('collector') and name != 'collector':
        name = name[:-len('collector')]
    return name


collector_registry = CollectorRegistry()


def setup_logging(log_level: str) -> None:
    """Configure root logging; raises ValueError for an unknown level name."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_client(args: argparse.Namespace) -> StatsdClient:
    """
    Create a StatsD client from command line arguments.

    Args:
        args (argparse.Namespace): Command line arguments

    Returns:
        StatsdClient: An unbuffered client when buffer_size is 0, buffered otherwise
    """
    return StatsdClient(
        server_address=args.server_address,
        prefix=args.prefix,
        sample_mode=args.sample_mode,
        buffer_size=args.buffer_size,
        flush_interval=args.flush_interval
    )


def instantiate_collector(collector_type: str, collector_args: Dict[str, Any], dry_run: bool) -> Optional[Collector]:
    """
    Build a collector from its type name and constructor arguments.

    ``dry_run`` is passed only to collectors whose constructor accepts it.

    Returns:
        Collector: The new collector, or None if the type is unknown or the
            arguments do not fit its constructor
    """
    collector_class = collector_registry.get_collector_class(collector_type)
    if collector_class is None:
        logger.error("Unknown collector %r, available: %s", collector_type,
                     ', '.join(collector_registry.get_available_collectors()) or 'none')
        return None

    kwargs = dict(collector_args)
    if 'dry_run' in inspect.signature(collector_class).parameters:
        kwargs['dry_run'] = dry_run
    try:
        return collector_class(**kwargs)
    except TypeError as e:
        logger.error("Bad arguments for collector %s: %s", collector_type, e)
        return None


def parse_collector_spec(text: str) -> Tuple[str, Dict[str, Any]]:
    """
    Split ``"type:name=value,name=value"`` into the type and its arguments.

    Entries without ``=`` are ignored.
    """
    collector_type, _, arg_text = text.partition(':')
    params = {}
    for item in arg_text.split(','):
        name, sep, value = item.partition('=')
        if sep:
            params[name.strip()] = value.strip()
    return collector_type.strip().lower(), params


def load_config_from_file(config_file: str) -> Dict[str, Any]:
    """
    Read a JSON object of option values keyed like the long options.

    A missing or unreadable file is logged and yields an empty config.
    """
    try:
        with open(config_file, 'r') as f:
            config = json.load(f)
    except FileNotFoundError:
        logger.error("Config file not found: %s", config_file)
        return {}
    except (OSError, ValueError) as e:
        logger.error("Cannot load config file %s: %s", config_file, e)
        return {}
    logger.debug("Loaded configuration from %s: %s", config_file, config)
    return config


def merge_config_with_args(config: Dict[str, Any], args: argparse.Namespace,
                           explicit: Optional[set] = None) -> argparse.Namespace:
    """
    Merge configuration from a file with command line arguments.
    Command line arguments take precedence over config file values.

    Args:
        config (dict): Configuration dictionary from file
        args (argparse.Namespace): Command line arguments
        explicit (set, optional): Argument names given on the command line

    Returns:
        argparse.Namespace: Updated arguments namespace
    """
    args_dict = vars(args).copy()
    explicit = explicit or set()

    for key, value in config.items():
        arg_key = key.replace('-', '_')
        if arg_key not in explicit:
            args_dict[arg_key] = value

    return argparse.Namespace(**args_dict)


def explicit_arguments(parser: argparse.ArgumentParser, argv: List[str]) -> set:
    """Names of the options that appear on the command line."""
    names = set()
    for action in parser._actions:
        if any(arg == opt or arg.startswith(opt + '=') for opt in action.option_strings for arg in argv):
            names.add(action.dest)
    return names


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Run collectors and send their gauges to a StatsD collector.',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument('--config-file', type=str,
                        help='Path to JSON configuration file')

    # General options
    parser.add_argument('--log-level', type=str, default=sdk_config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Log level')
    parser.add_argument('--interval', type=float, default=60,
                        help='Interval between collections in seconds')
    parser.add_argument('--count', type=int, default=0,
                        help='Number of collection rounds (0 for infinite)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Do not send metrics, just log them')
    parser.add_argument('--collectors', type=str, nargs='*',
                        help='List of collectors to run in format "type:param1=value1,param2=value2"')

    # SDK configuration
    parser.add_argument('--server-address', type=str, default=sdk_config.SERVER_ADDRESS,
                        help='StatsD collector address as host:port')
    parser.add_argument('--prefix', type=str, default=sdk_config.PREFIX,
                        help='Prefix prepended to every metric key')
    parser.add_argument('--sample-mode', type=str, default=sdk_config.SAMPLE_MODE,
                        help='"none" or a sample rate between 0 and 1')
    parser.add_argument('--buffer-size', type=int, default=sdk_config.BUFFER_SIZE,
                        help='Datagram size in bytes (0 sends every line immediately)')
    parser.add_argument('--flush-interval', type=float, default=sdk_config.FLUSH_INTERVAL,
                        help='Seconds between flushes of buffered metrics')
    return parser


def run_rounds(manager: MetricsManager, interval: float, count: int) -> int:
    """
    Run collection rounds on a fixed schedule.

    Returns:
        int: Number of rounds completed
    """
    round_count = 0
    next_collection_time = time.time()
    try:
        while count == 0 or round_count < count:
            if time.time() > next_collection_time:
                next_collection_time = time.time()

            round_count += 1
            logger.info("Collection round %s%s", round_count, ("/%s" % count if count > 0 else ""))
            manager.collect_and_send()

            if count == 0 or round_count < count:
                next_collection_time += interval
                wait_time = next_collection_time - time.time()
                if wait_time > 0:
                    logger.debug("Waiting %.2f seconds until next collection...", wait_time)
                    time.sleep(wait_time)
                else:
                    logger.warning("Collection took longer than interval. Next collection will start immediately.")
    except KeyboardInterrupt:
        logger.info("Collection interrupted by user.")
    return round_count


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to parse arguments and run the collectors."""
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config_file:
        config = load_config_from_file(args.config_file)
        args = merge_config_with_args(config, args, explicit_arguments(parser, argv))

    setup_logging(args.log_level)

    if not args.collectors:
        parser.error("the --collectors argument is required either on command line or in config file")

    logger.info("Discovering collectors...")
    collector_registry.discover_collectors()

    client = build_client(args)
    manager = MetricsManager(client, dry_run=args.dry_run)
    for collector_spec in args.collectors:
        collector_type, params = parse_collector_spec(collector_spec)
        collector = instantiate_collector(collector_type, params, args.dry_run)
        if collector:
            manager.register_collector(collector)

    if not manager.collectors:
        logger.error("No usable collectors. Available collectors: %s",
                     collector_registry.get_available_collectors())
        return 1

    try:
        client.create_socket()
    except StatsdError as e:
        logger.error("Cannot open StatsD socket: %s", e)
        return 1

    try:
        run_rounds(manager, args.interval, args.count)
    finally:
        try:
            client.close()
        except StatsdError as e:
            logger.warning("Final flush failed: %s", e)
        logger.info("Collection completed. Stats: %s", client.stats)

    return 0


if __name__ == "__main__":
    sys.exit(main())
