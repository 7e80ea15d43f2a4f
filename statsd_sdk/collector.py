"""
Base class for collectors that read some local state and report it as gauges.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from .events import Number

logger = logging.getLogger(__name__)


class Collector(ABC):
    """
    A source of gauge readings.

    Subclasses implement ``collect`` to take raw readings and
    ``format_metrics`` to turn them into gauge keys and values.
    """

    @abstractmethod
    def collect(self) -> Dict[str, Any]:
        """Take one set of raw readings."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @property
    def metric_name(self) -> Optional[str]:
        """Key prefix for the gauges; subclasses supply their own default."""
        return getattr(self, '_metric_name', None)

    @metric_name.setter
    def metric_name(self, value: str) -> None:
        self._metric_name = value

    def safe_collect(self) -> Dict[str, Any]:
        """
        Like ``collect``, but a failure is logged and returned as ``{'error': message}``.
        """
        try:
            return self.collect()
        except Exception as e:
            logger.error("Error collecting metrics from %s: %s", self.name, e)
            return {'error': str(e)}

    @abstractmethod
    def format_metrics(self, raw_metrics: Dict[str, Any]) -> Dict[str, Number]:
        """
        Map raw readings to gauges.

        Args:
            raw_metrics (dict): Readings returned by collect()

        Returns:
            dict: Gauge key to value
        """

    def collect_and_send(self, client, dry_run: bool = False) -> Dict[str, Any]:
        """
        Collect one set of readings and record each as a gauge on ``client``.

        Args:
            client: StatsD client receiving the gauges
            dry_run (bool): If True, the gauges are only logged

        Returns:
            dict: The raw readings, or ``{'error': message}``
        """
        metrics = self.safe_collect()
        if 'error' in metrics:
            return metrics

        gauges = self.format_metrics(metrics)
        if dry_run:
            logger.info("DRY RUN: %s gauges: %s", self.name, gauges)
            return metrics

        for key, value in gauges.items():
            client.gauge(key, value)
        logger.debug("Sent %d gauges from %s", len(gauges), self.name)
        return metrics
