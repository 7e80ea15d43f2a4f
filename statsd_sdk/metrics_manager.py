"""
Metrics manager for handling collector registration and collection rounds.
"""
import logging
from typing import Dict, List, Any

from .collector import Collector
from .errors import StatsdError

logger = logging.getLogger(__name__)


class MetricsManager:
    """
    Runs registered collectors against one StatsD client.
    """

    def __init__(self, client, dry_run: bool = False):
        """
        Initialize the metrics manager.

        Args:
            client: The StatsD client gauges are sent through
            dry_run (bool): If True, collectors only log what they would send
        """
        self.client = client
        self.dry_run = dry_run
        self.collectors: List[Collector] = []

    def register_collector(self, collector: Collector) -> None:
        """
        Register a collector with the manager.

        Args:
            collector (Collector): The collector to register
        """
        self.collectors.append(collector)
        logger.debug("Registered collector: %s", collector.name)

    def register_collectors(self, collectors: List[Collector]) -> None:
        """
        Register multiple collectors with the manager.

        Args:
            collectors (List[Collector]): The collectors to register
        """
        for collector in collectors:
            self.register_collector(collector)

    def collect_metrics(self) -> Dict[str, Any]:
        """
        Collect metrics from all registered collectors without sending them.

        Returns:
            dict: The collected metrics, keyed by collector name
        """
        return {collector.name: collector.safe_collect() for collector in self.collectors}

    def collect_and_send(self) -> Dict[str, Any]:
        """
        Run one collection round and send every gauge.

        A collector whose gauges cannot be sent is logged and skipped; the
        remaining collectors still run.

        Returns:
            dict: The collected metrics, keyed by collector name
        """
        results = {}
        for collector in self.collectors:
            try:
                results[collector.name] = collector.collect_and_send(self.client, dry_run=self.dry_run)
            except StatsdError as e:
                logger.error("Error sending metrics from %s: %s", collector.name, e)
                results[collector.name] = {'error': str(e)}
        return results
