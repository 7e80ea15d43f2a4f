#!/usr/bin/env python3
"""
Example script demonstrating how to use the StatsD SDK.
"""
import random
import time

import psutil

from statsd_sdk import new_statsd_client_buffered


def record_system_metrics(client):
    """Record a few host metrics and some synthetic request data."""
    client.gauge('example.%HOST%.cpu_usage', psutil.cpu_percent(interval=None))
    client.gauge('example.%HOST%.memory_usage', psutil.virtual_memory().percent)

    for _ in range(random.randint(1, 10)):
        client.incr('example.requests')
        client.timing('example.request_time', random.randint(5, 250))
        client.set('example.users', random.choice(['alice', 'bob', 'carol']))


def main():
    """Main function to run the example."""
    print("Starting StatsD example...")

    client = new_statsd_client_buffered('localhost:8125', prefix='myproject.', buffer_size=512)
    client.create_socket()
    try:
        # Record every second for 10 seconds; the client flushes in the background
        for _ in range(10):
            record_system_metrics(client)
            time.sleep(1)
    finally:
        client.close()

    print(f"Done. Stats: {client.stats}")


if __name__ == "__main__":
    main()
