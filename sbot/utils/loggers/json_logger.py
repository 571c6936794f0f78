import json
import logging
import os
import sys
from datetime import datetime


class JsonFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per log record."""

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
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Structured data passed with extra={"metrics": {...}}
        if hasattr(record, "metrics"):
            log_data["metrics"] = record.metrics

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_log_file(log_file_path):
    """
    Make sure the directory of a log file exists.

    Args:
        log_file_path (str): Path to the log file

    Returns:
        str: Absolute path to the log file
    """
    log_file_path = os.path.abspath(log_file_path)
    log_dir = os.path.dirname(log_file_path)
    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)
    return log_file_path


def get_logger(logger_name, log_file=None, clear_existing=True, console=True,
               level=logging.INFO):
    """
    Get a configured logger instance with JSON formatting.

    The log file is opened in append mode, so restarts keep earlier records.

    Args:
        logger_name (str): Name for the logger
        log_file (str, optional): Path to the log file
        clear_existing (bool): Whether to clear existing handlers
        console (bool): Whether to also log to stdout. With a log file and
            ``console=False`` all output goes to the file only.
        level (int): Minimum level written by the handlers

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    if clear_existing and logger.handlers:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    if logger.handlers:
        return logger

    if console or not log_file:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(JsonFormatter())
        logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(
            setup_log_file(log_file), mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)

    return logger
