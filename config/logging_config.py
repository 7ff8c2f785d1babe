import logging
import logging.config
import sys
from pathlib import Path
from typing import Dict, Any, Tuple

def setup_logging(log_level: str = "INFO", log_dir: str = "logs") -> Tuple[logging.Logger, logging.Logger, logging.Logger]:
    """Set up logging configuration."""
    # Create logs directory if it doesn't exist
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_level = log_level.upper()

    # Configure logging format
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    # Configure handlers
    handlers = {
        # File handler for all logs
        "file": {
            "class": "logging.FileHandler",
            "filename": str(log_path / "workflow.log"),
            "formatter": "standard",
            "level": log_level
        },
        # File handler for errors only
        "error_file": {
            "class": "logging.FileHandler",
            "filename": str(log_path / "errors.log"),
            "formatter": "detailed",
            "level": "ERROR"
        },
        # Console handler
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": log_level,
            "stream": sys.stdout
        }
    }

    formatters = {
        "standard": {
            "format": log_format,
            "datefmt": date_format
        },
        "detailed": {
            "format": log_format + "\nException: %(exc_info)s",
            "datefmt": date_format
        }
    }

    # One logger per area: graph execution, agents/tools, HTTP surface
    loggers = {
        name: {
            "level": log_level,
            "handlers": ["file", "console", "error_file"],
            "propagate": False
        }
        for name in ("workflow", "agents", "api")
    }

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "loggers": loggers
    }

    logging.config.dictConfig(config)

    workflow_logger = logging.getLogger("workflow")
    agents_logger = logging.getLogger("agents")
    api_logger = logging.getLogger("api")

    workflow_logger.info("Logging configuration initialized")
    return workflow_logger, agents_logger, api_logger
