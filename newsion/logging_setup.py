"""Root logger configuration shared by the entry points."""
import json
import logging
import os
import sys

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; tracebacks go into ``exc_info``."""

    def format(self, record):
        payload = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'name': record.name,
            'message': record.getMessage(),
        }
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level=None, log_format=None):
    """Configure the root logger from LOG_LEVEL / LOG_FORMAT.

    Resolved at call time so values loaded by load_dotenv() are respected.
    """
    level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_format = (log_format or os.getenv('LOG_FORMAT', 'text')).lower()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if log_format == 'json' else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    # Third-party chatter
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)
