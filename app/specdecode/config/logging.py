import logging
import logging.config
import os
import json
from typing import Optional
from specdecode.config.settings import get_settings, Settings

def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with consistent naming convention.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        Configured logger instance.
    """
    if name is None:
        import inspect
        frame = inspect.currentframe().f_back
        name = frame.f_globals.get('__name__', 'unknown')

    return logging.getLogger(name)

def init_logging(config: Optional[Settings] = None) -> None:
    """
    Initialize logging configuration for the application.

    Args:
        config: Settings object containing logging configuration. If None, uses default settings.

    Raises:
        OSError: If log directory cannot be created or is not writable.
        ValueError: If logging configuration is invalid.
    """
    try:
        config = config or get_settings()

        handlers = {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": config.log_level,
            },
        }

        log_file = None
        if config.log_to_file:
            log_file = os.path.join(config.log_dir, "app.log")
            os.makedirs(config.log_dir, exist_ok=True)
            if not os.access(config.log_dir, os.W_OK):
                raise OSError(f"Log directory {config.log_dir} is not writable")
            handlers["file"] = {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "json",
                "filename": log_file,
                "maxBytes": 10 * 1024 * 1024,  # 10MB
                "backupCount": 5,
                "level": config.log_level,
            }

        LOGGING_CONFIG = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S"
                },
                "json": {
                    "()": "specdecode.config.logging.JsonFormatter"
                }
            },
            "handlers": handlers,
            "loggers": {
                "specdecode": {
                    "level": config.log_level,
                    "handlers": list(handlers),
                    "propagate": False,
                },
            }
        }

        logging.config.dictConfig(LOGGING_CONFIG)

        logger = get_logger(__name__)
        logger.debug(f"Logging initialized. Log level: {config.log_level}, Log file: {log_file}")

    except Exception as e:
        # Fallback to basic logging if configuration fails
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            handlers=[
                logging.StreamHandler(),
            ]
        )
        logging.error(f"Failed to initialize logging configuration: {e}")
        raise

class JsonFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        # Add exception info if present
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Add extra fields if present
        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, ensure_ascii=False)
