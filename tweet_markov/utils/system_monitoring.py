#!/usr/bin/env python3
"""
System Monitoring Module

This module provides utilities for sampling process resources (memory, CPU, threads)
while transition tables are built and text is generated. Snapshots are attached to
the structured JSON logs so long training runs can be followed from the log file.
"""

import os
import time
import threading
import platform
import psutil
from datetime import datetime


class MemoryManager:
    """
    Tracks process memory usage against a configured limit.
    """

    def __init__(self, logger, memory_limit_mb=None, memory_limit_percentage=85):
        """
        Initialize memory manager with specified limits.

        Args:
            logger: Logger instance for recording memory events
            memory_limit_mb (int, optional): Explicit memory threshold in MB
            memory_limit_percentage (float): Percentage of system memory to use if threshold not specified
        """
        self.logger = logger
        self.memory_limit_percentage = memory_limit_percentage

        system_memory = psutil.virtual_memory()
        self.total_system_memory_mb = system_memory.total / (1024 * 1024)

        if memory_limit_mb:
            self.memory_limit_mb = memory_limit_mb
        else:
            self.memory_limit_mb = int(
                self.total_system_memory_mb * (memory_limit_percentage / 100))

    def get_current_memory_usage(self):
        """
        Get current process memory usage.

        Returns:
            dict: Memory usage statistics including current and percentage usage
        """
        process = psutil.Process(os.getpid())
        current_memory_mb = process.memory_info().rss / (1024 * 1024)

        return {
            "current_mb": current_memory_mb,
            "percent_used": (current_memory_mb / self.total_system_memory_mb) * 100,
            "system_percent_used": psutil.virtual_memory().percent,
            "limit_mb": self.memory_limit_mb
        }

    def check_memory_health(self):
        """
        Check if memory usage is within healthy limits.

        Returns:
            tuple: (is_healthy, memory_usage_dict, warning_message)
        """
        memory_usage = self.get_current_memory_usage()

        warning_threshold = 0.9 * self.memory_limit_mb
        danger_threshold = 0.95 * self.memory_limit_mb

        if memory_usage["current_mb"] > danger_threshold:
            message = f"DANGER: Memory usage at {memory_usage['current_mb']:.2f} MB, {(memory_usage['current_mb'] / self.memory_limit_mb) * 100:.1f}% of limit"
            return False, memory_usage, message
        if memory_usage["current_mb"] > warning_threshold:
            message = f"WARNING: Memory usage at {memory_usage['current_mb']:.2f} MB, {(memory_usage['current_mb'] / self.memory_limit_mb) * 100:.1f}% of limit"
            return True, memory_usage, message
        return True, memory_usage, None


class ResourceMonitor:
    """
    Collects resource snapshots and logs progress of long-running operations.
    """

    def __init__(self, logger, memory_limit_mb=None, memory_limit_percentage=85):
        self.logger = logger
        self.memory_manager = MemoryManager(
            logger=logger,
            memory_limit_mb=memory_limit_mb,
            memory_limit_percentage=memory_limit_percentage
        )

        self.current_operation = None
        self.progress_percent = 0
        self.operation_start_time = None

    def get_resource_usage(self):
        """
        Get resource usage statistics for the current process.

        Returns:
            dict: Resource usage metrics for CPU, memory and threads
        """
        process = psutil.Process(os.getpid())

        return {
            "timestamp": datetime.now().isoformat(),
            "memory": self.memory_manager.get_current_memory_usage(),
            "cpu": {
                # Non-blocking: percentage since the previous call
                "process_percent": process.cpu_percent(interval=None),
                "cores": psutil.cpu_count(),
            },
            "threads": threading.active_count(),
            "process_id": os.getpid()
        }

    def describe_system(self):
        """Log platform information once at the start of a pipeline run."""
        info = {
            "platform": platform.platform(),
            "python_version": platform.python_version(),
            "total_memory_gb": self.memory_manager.total_system_memory_mb / 1024,
            "memory_limit_gb": self.memory_manager.memory_limit_mb / 1024
        }
        self.logger.info("System architecture", extra={"metrics": info})
        return info

    def start(self, operation_name=None):
        """
        Begin tracking an operation.

        Args:
            operation_name (str, optional): Name of the operation being monitored
        """
        self.current_operation = operation_name
        self.progress_percent = 0
        self.operation_start_time = time.time()

        self.logger.info(f"Resource monitoring started for operation: {operation_name}", extra={
            "metrics": self.get_resource_usage(),
            "operation": operation_name
        })

    def stop(self):
        """
        Finish tracking the current operation and log the final snapshot.

        Returns:
            float or None: Duration of the operation in seconds
        """
        duration = None
        if self.operation_start_time:
            duration = time.time() - self.operation_start_time

        is_healthy, _, warning = self.memory_manager.check_memory_health()
        if warning:
            self.logger.warning(warning, extra={"operation": self.current_operation})

        metrics = self.get_resource_usage()
        metrics["duration"] = duration
        metrics["memory_healthy"] = is_healthy
        self.logger.info("Resource monitoring stopped", extra={
            "metrics": metrics,
            "operation": self.current_operation
        })

        self.current_operation = None
        self.progress_percent = 0
        self.operation_start_time = None
        return duration

    def log_progress(self, message, progress_percent=None, operation=None, extra_metrics=None):
        """
        Log progress of an ongoing operation with current resource metrics.

        Args:
            message (str): Progress message to log
            progress_percent (float, optional): Percentage of operation completed (0-100)
            operation (str, optional): Operation name (updates current_operation if provided)
            extra_metrics (dict, optional): Additional metrics to include in the log
        """
        if operation:
            self.current_operation = operation

        if progress_percent is not None:
            self.progress_percent = progress_percent

        metrics = {"system_resources": self.get_resource_usage()}
        if extra_metrics:
            metrics.update(extra_metrics)

        if self.progress_percent > 0:
            metrics["progress_percent"] = self.progress_percent

        if self.operation_start_time:
            elapsed = time.time() - self.operation_start_time
            metrics["elapsed_time"] = elapsed

            if self.progress_percent > 0:
                estimated_total = elapsed / (self.progress_percent / 100)
                metrics["estimated_remaining_time"] = estimated_total - elapsed

        self.logger.info(message, extra={
            "metrics": metrics,
            "operation": self.current_operation
        })
        return metrics
