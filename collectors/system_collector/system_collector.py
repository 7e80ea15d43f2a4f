import logging
from typing import Dict, Any

import psutil

from statsd_sdk.collector import Collector

logger = logging.getLogger(__name__)


class SystemCollector(Collector):
    """Collector for host CPU, memory and disk utilisation."""

    def __init__(self, disk_path: str = '/', dry_run: bool = False):
        """
        Initialize the system collector.

        Args:
            disk_path (str): Mount point whose usage is reported
            dry_run (bool): If True, don't actually send metrics
        """
        self.disk_path = disk_path
        self.dry_run = dry_run

    @property
    def metric_name(self) -> str:
        return getattr(self, '_metric_name', None) or 'system.%HOST%'

    @metric_name.setter
    def metric_name(self, value: str) -> None:
        self._metric_name = value

    def collect(self) -> Dict[str, Any]:
        """Collect system metrics.

        Returns:
            dict: CPU, memory and disk usage percentages plus the load average
        """
        try:
            metrics = {
                'cpu_percent': psutil.cpu_percent(interval=None),
                'memory_percent': psutil.virtual_memory().percent,
                'disk_percent': psutil.disk_usage(self.disk_path).percent,
            }
        except OSError as e:
            raise RuntimeError(f"Error collecting system metrics: {str(e)}")

        if hasattr(psutil, 'getloadavg'):
            metrics['load_1m'] = psutil.getloadavg()[0]
        return metrics

    def format_metrics(self, raw_metrics: Dict[str, Any]) -> Dict[str, float]:
        """Name each reading under the collector's key prefix."""
        return {f"{self.metric_name}.{name}": float(value) for name, value in raw_metrics.items()}

    def collect_and_send(self, client, dry_run: bool = False) -> Dict[str, Any]:
        """Collect and send, honouring the dry_run this collector was built with."""
        return super().collect_and_send(client, dry_run=dry_run or self.dry_run)
