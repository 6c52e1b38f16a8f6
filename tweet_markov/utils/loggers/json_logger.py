from datetime import datetime
import os
import logging
import json
import sys

# Configure JSON logging


class JsonLogger(logging.Formatter):
    """Formatter that outputs JSON strings after parsing the log record."""

    def format(self, record):
        """
        Format the log record as a JSON string.

        Args:
            record: The log record to format

        Returns:
            str: JSON formatted log string
        """
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        # Include extra data if available
        if hasattr(record, "metrics"):
            log_data["metrics"] = record.metrics

        if hasattr(record, "operation"):
            log_data["operation"] = record.operation

        # Include exception info if available
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        # Tuples used as bigram contexts are not JSON types
        return json.dumps(log_data, default=str)


def get_package_root():
    """
    Get the absolute path to the installed tweet_markov package directory.

    Data files shipped with the package (such as configs/) are resolved from
    here, so lookups do not depend on the working directory or on running
    from a source checkout.

    Returns:
        str: Path to the tweet_markov package directory
    """
    current_dir = os.path.dirname(os.path.abspath(__file__))

    # tweet_markov/utils/loggers -> tweet_markov
    return os.path.abspath(os.path.join(current_dir, "..", ".."))


def setup_log_file(log_file_path):
    """
    Creates or clears the log file.
    Ensures the directory exists and recreates the file.

    Args:
        log_file_path (str): Path to the log file

    Returns:
        str: Path to the created log file
    """
    log_dir = os.path.dirname(log_file_path)

    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    with open(log_file_path, "w") as f:
        f.write(
            f"# Log started on {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")

    return log_file_path


def get_logger(logger_name, log_file=None, clear_existing=True):
    """
    Create and configure a logger with JSON formatting.

    Args:
        logger_name (str): Name of the logger
        log_file (str, optional): Path to log file if file logging is desired
        clear_existing (bool): Whether to truncate an existing log file (default: True)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)

    # Only add handlers if the logger doesn't have any
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JsonLogger())
    logger.addHandler(console_handler)

    if log_file:
        try:
            if clear_existing:
                setup_log_file(log_file)
            elif os.path.dirname(log_file):
                os.makedirs(os.path.dirname(log_file), exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(JsonLogger())
            logger.addHandler(file_handler)
            logger.info(f"JSON logging initialized to {log_file}")
        except (IOError, PermissionError) as e:
            # Console logging keeps working without the file
            logger.warning(f"Could not create log file {log_file}: {e}")

    return logger


def log_json(logger, message, data=None):
    """
    Directly log a JSON-formatted message with optional data.
    This is a helper function to consistently log structured data.

    Args:
        logger: The logger instance to use
        message (str): Log message
        data (dict, optional): Data to include in the log
    """
    extra = {}

    if data:
        extra["metrics"] = data

    logger.info(message, extra=extra)
