#!/usr/bin/env python3
"""
System Monitoring Module

Reports the resource usage of the bot process so that model rebuilds can be
logged together with the memory they cost.
"""

import os
import threading
from datetime import datetime

import psutil


class ResourceMonitor:
    """
    Collects process and system resource metrics.
    """

    def __init__(self, logger):
        """
        Args:
            logger: Logger instance used by ``log_usage``
        """
        self.logger = logger
        self.process = psutil.Process(os.getpid())

    def get_resource_usage(self):
        """
        Get resource usage statistics.

        Returns:
            dict: Memory, CPU and thread metrics for the current process
        """
        memory_info = self.process.memory_info()
        system_memory = psutil.virtual_memory()

        return {
            "timestamp": datetime.now().isoformat(),
            "memory": {
                "current_mb": memory_info.rss / (1024 * 1024),
                "system_percent_used": system_memory.percent,
            },
            "cpu": {
                # Non-blocking: measured since the previous call
                "process_percent": self.process.cpu_percent(interval=None),
                "cores": psutil.cpu_count(),
            },
            "threads": threading.active_count(),
            "process_id": self.process.pid,
        }

    def log_usage(self, message, extra_metrics=None):
        """
        Log current resource usage.

        Args:
            message (str): Log message
            extra_metrics (dict, optional): Additional metrics to include
        """
        metrics = {"system_resources": self.get_resource_usage()}
        if extra_metrics:
            metrics.update(extra_metrics)
        self.logger.info(message, extra={"metrics": metrics})
