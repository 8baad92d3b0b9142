"""
Logging configuration for the hostel allocation engine.
Provides structured logging with different handlers and formatters.
"""

import os
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from hostel_allocation.config.settings import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        """Add custom fields to the log record"""
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['environment'] = settings.ENVIRONMENT.value

        # Allocation context passed through ``extra=``
        for key in ('transaction_id', 'operation', 'hostel_id', 'room_id', 'student_profile_id', 'attempt'):
            if hasattr(record, key):
                log_record[key] = getattr(record, key)

        if record.exc_info:
            log_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }


def build_logging_config(log_dir: str = settings.LOG_DIR, to_file: bool = settings.LOG_TO_FILE) -> Dict[str, Any]:
    """
    Build the ``dictConfig`` mapping.

    Args:
        log_dir: Directory for rotating log files
        to_file: Attach the file handlers when True

    Returns:
        Logging configuration dictionary
    """
    handlers: Dict[str, Any] = {
        'console': {
            'level': 'DEBUG' if settings.DEBUG else 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'colored' if settings.is_development() else 'standard'
        },
    }
    if to_file:
        handlers.update({
            'file': {
                'level': 'INFO',
                'class': 'logging.handlers.RotatingFileHandler',
                'filename': os.path.join(log_dir, 'allocation.log'),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 10,
                'formatter': 'standard',
                'encoding': 'utf8'
            },
            'error_file': {
                'level': 'ERROR',
                'class': 'logging.handlers.RotatingFileHandler',
                'filename': os.path.join(log_dir, 'error.log'),
                'maxBytes': 10485760,
                'backupCount': 10,
                'formatter': 'standard',
                'encoding': 'utf8'
            },
            'json_file': {
                'level': 'INFO',
                'class': 'logging.handlers.RotatingFileHandler',
                'filename': os.path.join(log_dir, 'allocation.json.log'),
                'maxBytes': 10485760,
                'backupCount': 10,
                'formatter': 'json',
                'encoding': 'utf8'
            },
        })

    app_handlers = list(handlers)
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'json': {
                '()': CustomJsonFormatter,
                'format': '%(timestamp)s %(level)s %(logger)s %(message)s'
            },
            'colored': {
                '()': 'colorlog.ColoredFormatter',
                'format': '%(log_color)s%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'log_colors': {
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            }
        },
        'handlers': handlers,
        'loggers': {
            '': {
                'handlers': ['console'],
                'level': settings.LOG_LEVEL,
            },
            'hostel_allocation': {
                'handlers': app_handlers,
                'level': settings.LOG_LEVEL,
                'propagate': False
            },
            'sqlalchemy.engine': {
                'handlers': ['console'],
                'level': 'WARNING',
                'propagate': False
            },
        }
    }


def setup_logging(log_dir: str = settings.LOG_DIR, to_file: bool = settings.LOG_TO_FILE):
    """Configure application logging"""
    if to_file:
        os.makedirs(log_dir, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_dir, to_file))
    logger = logging.getLogger("hostel_allocation")
    logger.info(f"Logging initialized with level: {settings.LOG_LEVEL}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the package namespace.

    Service classes pass their class name; those loggers are nested under
    ``hostel_allocation.`` so they share the package handlers.
    """
    if not name.startswith("hostel_allocation"):
        name = f"hostel_allocation.{name}"
    return logging.getLogger(name)
