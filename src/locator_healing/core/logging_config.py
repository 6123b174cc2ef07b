"""
Logging configuration for the locator self-healing system.

This module provides structured logging configuration with different loggers
for the engine, the stores and the statistics rollups.
"""

import logging
import logging.handlers
import json
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import asdict, is_dataclass


COMPONENTS = ("engine", "storage", "statistics")


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    CONTEXT_FIELDS = (
        'healing_id', 'step_id', 'operation', 'phase',
        'duration', 'success', 'error_code', 'metadata'
    )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        for name in self.CONTEXT_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data['exception'] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        return json.dumps(log_data, default=self._json_serializer)

    def _json_serializer(self, obj):
        """Custom JSON serializer for complex objects."""
        if is_dataclass(obj):
            return asdict(obj)
        elif isinstance(obj, Enum):
            return obj.value
        elif hasattr(obj, 'isoformat'):
            return obj.isoformat()
        elif hasattr(obj, '__dict__'):
            return obj.__dict__
        else:
            return str(obj)


class HealingLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter for healing operations with contextual information."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        """Process log message and add contextual information."""
        extra = dict(self.extra)
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = extra
        return msg, kwargs

    def log_operation_start(self, operation: str, **metadata):
        """Log the start of a healing operation."""
        self.info(f"Starting {operation}", extra={
            'operation': operation,
            'phase': 'start',
            'metadata': metadata
        })

    def log_operation_success(self, operation: str, duration: float, **metadata):
        """Log successful completion of a healing operation."""
        self.info(f"Completed {operation} successfully", extra={
            'operation': operation,
            'phase': 'complete',
            'success': True,
            'duration': duration,
            'metadata': metadata
        })

    def log_operation_failure(self, operation: str, duration: float, error: str,
                              error_code: Optional[str] = None, **metadata):
        """Log failure of a healing operation."""
        self.warning(f"Failed {operation}: {error}", extra={
            'operation': operation,
            'phase': 'complete',
            'success': False,
            'duration': duration,
            'error_code': error_code,
            'metadata': metadata
        })


def setup_healing_logging(log_level: str = "INFO", log_dir: str = "logs") -> Dict[str, logging.Logger]:
    """
    Set up structured logging for the healing system.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory to store log files

    Returns:
        Dictionary of configured loggers keyed by component name
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, log_level.upper())

    structured_formatter = StructuredFormatter()
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(level)

    all_logs_handler = logging.handlers.RotatingFileHandler(
        log_path / "healing_all.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    all_logs_handler.setFormatter(structured_formatter)
    all_logs_handler.setLevel(logging.DEBUG)

    operations_handler = logging.handlers.RotatingFileHandler(
        log_path / "healing_operations.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10
    )
    operations_handler.setFormatter(structured_formatter)
    operations_handler.setLevel(logging.INFO)

    error_handler = logging.handlers.RotatingFileHandler(
        log_path / "healing_errors.log",
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=10
    )
    error_handler.setFormatter(structured_formatter)
    error_handler.setLevel(logging.ERROR)

    # Handlers go on the package logger; the root logger belongs to the host
    package_logger = logging.getLogger("locator_healing")
    package_logger.setLevel(level)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.addHandler(console_handler)
    package_logger.addHandler(all_logs_handler)
    package_logger.addHandler(error_handler)

    loggers = {}
    for component in COMPONENTS:
        component_logger = logging.getLogger(f"healing.{component}")
        component_logger.setLevel(level)
        for handler in component_logger.handlers[:]:
            component_logger.removeHandler(handler)
            handler.close()
        component_logger.addHandler(operations_handler)
        component_logger.addHandler(error_handler)
        loggers[component] = component_logger

    return loggers


def get_healing_logger(component: str, healing_id: Optional[str] = None,
                       step_id: Optional[str] = None) -> HealingLoggerAdapter:
    """
    Get a healing logger adapter with contextual information.

    Args:
        component: Component name (engine, storage, statistics)
        healing_id: Optional healing attempt ID
        step_id: Optional test step ID

    Returns:
        HealingLoggerAdapter instance
    """
    logger = logging.getLogger(f"healing.{component}")

    extra = {}
    if healing_id:
        extra['healing_id'] = healing_id
    if step_id:
        extra['step_id'] = step_id

    return HealingLoggerAdapter(logger, extra)
