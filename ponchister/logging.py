import logging
import uuid

QUEUE_LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s [sid=%(sid)s]: %(message)s'


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(QUEUE_LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def new_session_id() -> str:
    """Short id tying together every log line of one queue session."""
    return f"q-{uuid.uuid4().hex[:6]}"


def queue_event(**fields) -> str:
    """Render a ``key=value`` log line in argument order, skipping unset fields.

    >>> queue_event(songId=7, action='advance', position=2, total=None)
    'songId=7 action=advance position=2'
    """
    return ' '.join(f"{key}={value}" for key, value in fields.items() if value is not None)


def with_context(logger: logging.Logger, sid: str | None = None):
    """Wrap a logger so every record carries the queue session id."""
    if sid is None:
        sid = new_session_id()
    return logging.LoggerAdapter(logger, {'sid': sid}), sid
