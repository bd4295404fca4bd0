# devai_security/core/logging_config.py
"""
Logging for applications embedding the security layer.

Library modules only ask for ``logging.getLogger(__name__)``. Handlers are
attached here, once, by the embedding application:

- the root logger gets a console handler and ``devai_security.log``
- the security event journal additionally gets its own audit file,
  ``security_events.log``, so incidents can be kept apart from chatter
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 5

SECURITY_EVENT_LOGGER = "devai_security.security.event_log"

# Chatty third-party loggers
QUIET_LOGGERS = ("redis",)


def _attach_rotating_file(target: logging.Logger, path: Path, formatter: logging.Formatter) -> None:
    filename = str(path.resolve())
    for handler in target.handlers:
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == filename:
            return

    handler = RotatingFileHandler(
        filename=filename,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding='utf-8'
    )
    handler.setFormatter(formatter)
    target.addHandler(handler)


def setup_logging(
    level: Optional[str] = None,
    log_dir: Union[str, Path, None] = None,
    audit_file: bool = True,
) -> logging.Logger:
    """
    Configure console and file output.

    Safe to call repeatedly; handlers are never attached twice.

    Args:
        level: Root level, defaults to LOG_LEVEL or INFO
        log_dir: Target folder, defaults to LOG_DIR or ``logs``
        audit_file: Also write security events to ``security_events.log``

    Returns:
        The root logger
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_dir = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    has_console = any(
        type(h) is logging.StreamHandler for h in root_logger.handlers
    )
    if not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _attach_rotating_file(root_logger, log_dir / 'devai_security.log', formatter)

    if audit_file:
        # Events still propagate to the root handlers
        _attach_rotating_file(
            logging.getLogger(SECURITY_EVENT_LOGGER),
            log_dir / 'security_events.log',
            formatter
        )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
