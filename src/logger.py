"""
Centralized logging configuration for CottonLog.

This module provides the logging system used by every CottonLog module:
- Structured JSON logging for easy parsing and analysis
- Automatic file rotation (prevents log files from growing indefinitely)
- Configurable log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
- Automatic cleanup of old logs (retention policy)
- Both file and console output
- Context-aware logging (session_id, lot, operator_id)

For a scale house, the log is the audit trail of every weighed bale: which
session, which lot, which mill bale number, and when.

Log file location: <DataDir>/Logs/cottonlog/
Log file format: YYYY-MM-DD.log

Example log entry (JSON format):
    {"timestamp": "2026-10-19T14:30:45.123", "level": "INFO", "tool": "cottonlog",
     "session_id": "5f0c...", "lot": "L9", "operator_id": null,
     "module": "workflow_engine", "function": "complete_bale", "line": 310,
     "message": "Bale X completed as L9-5 (100.0)"}
"""

import logging
import json
import os
from datetime import datetime, timedelta
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional, Dict, Any
import configparser
from contextvars import ContextVar


# Context variables for structured logging
_session_id: ContextVar[Optional[str]] = ContextVar('session_id', default=None)
_lot: ContextVar[Optional[str]] = ContextVar('lot', default=None)
_operator_id: ContextVar[Optional[str]] = ContextVar('operator_id', default=None)

DEFAULT_DATA_DIR = Path(os.path.expanduser("~")) / ".cottonlog"


class StructuredJSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON with fields:
    - timestamp: ISO 8601 format
    - level: Log level
    - tool: Always "cottonlog"
    - session_id / lot / operator_id: Current context (if set)
    - module, function, line: Source location
    - message: Log message
    - exc_info: Exception information (if present)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'tool': 'cottonlog',
            'session_id': _session_id.get(),
            'lot': _lot.get(),
            'operator_id': _operator_id.get(),
            'module': record.name,
            'function': record.funcName,
            'line': record.lineno,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['exc_info'] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_data'):
            log_data['extra'] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False)


class AppLogger:
    """
    Centralized application logger with file rotation and cleanup.

    Logging is configured once, on the first ``get_logger`` call, no matter
    how many modules import it. Settings are read from config.ini:
        [Storage]
        DataDir = ~/.cottonlog
        [Logging]
        LogLevel = INFO
        MaxLogSizeMB = 10
        LogRetentionDays = 30

    Attributes:
        _instance: Singleton logger instance (class-level)
        _initialized: Whether logging has been configured (class-level)
    """

    _instance: Optional[logging.Logger] = None
    _initialized: bool = False

    @classmethod
    def get_logger(cls, name: str = 'CottonLog') -> logging.Logger:
        """
        Get or create application logger with lazy initialization.

        Usage in modules:
            from logger import get_logger
            logger = get_logger(__name__)

        Args:
            name: Logger name, typically the module name (__name__)

        Returns:
            Configured logger instance for the specified name
        """
        if not cls._initialized:
            cls._setup_logging()
            cls._initialized = True

        return logging.getLogger(name)

    @classmethod
    def _setup_logging(cls):
        """
        Setup logging configuration from config.ini.

        Configures the log directory, level, JSON file handler with rotation,
        console handler, and removes logs older than the retention period.
        """
        config = cls._load_config()

        data_dir = config.get('Storage', 'DataDir', fallback=str(DEFAULT_DATA_DIR))
        log_dir = Path(os.path.expanduser(data_dir)) / "Logs" / "cottonlog"

        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log_dir = DEFAULT_DATA_DIR / "logs"
            log_dir.mkdir(parents=True, exist_ok=True)
            print(f"Warning: Could not create logs directory. Using local: {log_dir}. Error: {e}")

        log_file = log_dir / f"{datetime.now():%Y-%m-%d}.log"

        log_level_str = config.get('Logging', 'LogLevel', fallback='INFO')
        log_level = getattr(logging, log_level_str.upper(), logging.INFO)

        max_log_size = config.getint('Logging', 'MaxLogSizeMB', fallback=10) * 1024 * 1024

        json_formatter = StructuredJSONFormatter()

        # timestamp | module | level | function:line | message
        console_formatter = logging.Formatter(
            fmt='%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_log_size,
            backupCount=30,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(json_formatter)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(console_formatter)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        retention_days = config.getint('Logging', 'LogRetentionDays', fallback=30)
        cls._cleanup_old_logs(log_dir, retention_days)

        logger = logging.getLogger('CottonLog')
        logger.info("=" * 80)
        logger.info("CottonLog Started")
        logger.info(f"Log Level: {log_level_str}")
        logger.info(f"Log File: {log_file}")
        logger.info("=" * 80)

    @staticmethod
    def _load_config() -> configparser.ConfigParser:
        """
        Load configuration from config.ini in the working directory.

        Returns:
            ConfigParser object, empty if config.ini is not found (defaults apply)
        """
        config = configparser.ConfigParser()
        config_path = Path('config.ini')

        if config_path.exists():
            config.read(config_path, encoding='utf-8')

        return config

    @staticmethod
    def _cleanup_old_logs(log_dir: Path, retention_days: int):
        """
        Delete log files older than the retention period.

        Args:
            log_dir: Directory containing log files
            retention_days: Days to keep logs; 0 or negative keeps everything
        """
        if retention_days <= 0:
            return

        cutoff_date = datetime.now() - timedelta(days=retention_days)

        try:
            for log_file in log_dir.glob("*.log*"):
                file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
                if file_mtime < cutoff_date:
                    log_file.unlink()
                    logging.getLogger('CottonLog').debug(f"Deleted old log: {log_file.name}")

        except OSError as e:
            # Non-fatal: a locked or vanished file must not stop the application
            logging.getLogger('CottonLog').warning(f"Failed to cleanup old logs: {e}")


def get_logger(name: str = 'CottonLog') -> logging.Logger:
    """
    Get application logger.

    Example:
        >>> from logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Session resumed")
    """
    return AppLogger.get_logger(name)


def set_session_context(session_id: Optional[str]) -> None:
    """Set current session ID for structured logging context."""
    _session_id.set(session_id)


def set_lot_context(lot: Optional[str]) -> None:
    """
    Set current mill lot for structured logging context.

    Example:
        >>> set_lot_context("L9")
        >>> logger.info("Weighing")  # Will include lot="L9"
    """
    _lot.set(lot)


def set_operator_context(operator_id: Optional[str]) -> None:
    """Set current operator ID for structured logging context."""
    _operator_id.set(operator_id)


def clear_logging_context() -> None:
    """Clear all logging context (session_id, lot, operator_id)."""
    _session_id.set(None)
    _lot.set(None)
    _operator_id.set(None)
