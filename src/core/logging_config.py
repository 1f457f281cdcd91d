# src/core/logging_config.py
"""
Centralized logging configuration for filter-download
Each component logs through a FilterLogger named after it
"""

import os
import sys
import logging
import logging.handlers
from typing import Dict, Any, Optional
from pathlib import Path
from datetime import datetime

class FilterFormatter(logging.Formatter):
    """Formatter that stamps records with a UTC timestamp and component name"""

    def __init__(self, include_service: bool = True):
        super().__init__()
        self.include_service = include_service

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, 'timestamp'):
            record.timestamp = datetime.utcnow().isoformat()

        if self.include_service and not hasattr(record, 'service'):
            # 'src.test_runner' -> 'test_runner'
            logger_parts = record.name.split('.')
            if len(logger_parts) >= 2 and logger_parts[0] == 'src':
                record.service = logger_parts[1]
            else:
                record.service = 'unknown'

        if self.include_service:
            format_str = '%(timestamp)s - %(service)s - %(levelname)s - %(name)s - %(message)s'
        else:
            format_str = '%(timestamp)s - %(levelname)s - %(name)s - %(message)s'

        if record.levelno >= logging.ERROR:
            format_str += ' - %(pathname)s:%(lineno)d'

        self._style = logging.PercentStyle(format_str)
        self._fmt = format_str
        return super().format(record)

class FilterLogger:
    """Per-component logger with lazy configuration"""

    def __init__(self, service_name: str = "unknown"):
        self.service_name = service_name
        self.logger = logging.getLogger(f"src.{service_name}")
        self._configured = False

    def configure(
        self,
        level: str = "INFO",
        log_to_file: bool = False,
        log_to_console: bool = True,
        log_dir: str = "logs",
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ) -> None:
        """Configure handlers for this component"""

        if self._configured:
            return

        self.logger.handlers.clear()

        numeric_level = getattr(logging, level.upper(), logging.INFO)
        self.logger.setLevel(numeric_level)

        # Don't propagate to root logger
        self.logger.propagate = False

        formatter = FilterFormatter(include_service=True)

        if log_to_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(numeric_level)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if log_to_file:
            try:
                log_path = Path(log_dir)
                log_path.mkdir(parents=True, exist_ok=True)

                log_file = log_path / f"{self.service_name}.log"

                file_handler = logging.handlers.RotatingFileHandler(
                    log_file,
                    maxBytes=max_bytes,
                    backupCount=backup_count,
                    encoding='utf-8'
                )
                file_handler.setLevel(numeric_level)
                file_handler.setFormatter(formatter)
                self.logger.addHandler(file_handler)

            except OSError as e:
                # Console output still works, report the file handler problem there
                self.logger.error(f"Failed to configure file logging: {e}")

        self._configured = True

    def get_logger(self) -> logging.Logger:
        if not self._configured:
            self.configure()
        return self.logger

    def log_service_start(self, version: str = "1.0.0", extra_info: Optional[Dict[str, Any]] = None):
        logger = self.get_logger()
        logger.info(f"Starting {self.service_name} v{version}")
        if extra_info:
            logger.info(f"Configuration: {extra_info}")

    def log_error_with_context(
        self,
        error: Exception,
        context: Optional[Dict[str, Any]] = None
    ):
        """Log error with additional context"""
        logger = self.get_logger()

        log_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
        }

        error_code = getattr(error, "error_code", None)
        if error_code is not None:
            log_data["error_code"] = error_code.value
        if context:
            log_data["context"] = context

        logger.error(f"Error occurred: {log_data}", exc_info=error)

    def log_performance_metric(
        self,
        operation: str,
        duration_ms: float,
        success: bool = True,
        metadata: Optional[Dict[str, Any]] = None
    ):
        logger = self.get_logger()

        log_data = {
            "operation": operation,
            "duration_ms": duration_ms,
            "success": success
        }

        if metadata:
            log_data.update(metadata)

        if success:
            logger.info(f"Performance: {log_data}")
        else:
            logger.warning(f"Performance (failed): {log_data}")

# Global logger instances for each component
loggers: Dict[str, FilterLogger] = {
    "test_runner": FilterLogger("test_runner"),
}

def get_filter_logger(service_name: str) -> FilterLogger:
    """Get the FilterLogger for a component, configured from the environment"""
    if service_name not in loggers:
        loggers[service_name] = FilterLogger(service_name)

    logger = loggers[service_name]

    if not logger._configured:
        logger.configure(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_to_file=os.getenv("LOG_TO_FILE", "false").lower() == "true",
            log_dir=os.getenv("LOG_DIR", "logs")
        )

    return logger

def get_logger(service_name: str) -> logging.Logger:
    """Get logger for a specific component"""
    return get_filter_logger(service_name).get_logger()
