"""Logging configuration for the back-office service."""
import logging
import logging.handlers
import os
from datetime import datetime, timezone
from pythonjsonlogger import jsonlogger

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter for structured logging."""

    def add_fields(self, log_record, record, message_dict):
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)
        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

def _rotating_handler(path, level, formatter):
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=10485760,  # 10MB
        backupCount=10
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler

def setup_app_logging(app, log_path=None):
    """Setup application-wide logging.

    The console handler is always installed. File handlers (plain, JSON and
    errors-only) are added when ``log_path`` is set.
    """
    root_logger = logging.getLogger()
    root_logger.handlers = []
    app.logger.handlers = []

    level = logging.DEBUG if app.debug else logging.INFO
    text_formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(text_formatter)
    root_logger.addHandler(console_handler)

    if log_path:
        os.makedirs(log_path, exist_ok=True)
        root_logger.addHandler(_rotating_handler(
            os.path.join(log_path, 'app.log'), logging.INFO, text_formatter
        ))
        root_logger.addHandler(_rotating_handler(
            os.path.join(log_path, 'app.json.log'), logging.INFO, CustomJsonFormatter()
        ))
        root_logger.addHandler(_rotating_handler(
            os.path.join(log_path, 'errors.log'), logging.ERROR, text_formatter
        ))

    root_logger.setLevel(level)
    app.logger.setLevel(level)

    # Suppress noisy library loggers
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    app.logger.info('Application logging configured')
