"""
Configuration settings for the StatsD SDK.
"""
import os

# Collector configuration
SERVER_ADDRESS = os.getenv('STATSD_SERVER_ADDRESS', 'localhost:8125')
PREFIX = os.getenv('STATSD_PREFIX', '')

# "none" disables sampling, otherwise a rate in (0, 1]
SAMPLE_MODE = os.getenv('STATSD_SAMPLE_MODE', 'none')

# Hostname substituted for %HOST% in keys, resolved lazily when unset
HOSTNAME = os.getenv('STATSD_HOSTNAME')

# Buffer configuration
BUFFER_SIZE = int(os.getenv('STATSD_BUFFER_SIZE', '1432'))  # bytes per datagram
FLUSH_INTERVAL = float(os.getenv('STATSD_FLUSH_INTERVAL', '1.0'))  # seconds

# Registry entries idle for this many flush intervals are evicted (0 keeps them forever)
EVICT_AFTER = int(os.getenv('STATSD_EVICT_AFTER', '3'))

# Logging configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
