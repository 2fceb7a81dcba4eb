"""
Logging for the NoteSync backend.

Everything under the ``notesync`` logger goes to the console (JSON, or
colored text in debug mode) and to rotating files in ``settings.log_dir``.
"""
import json
import logging
import logging.config
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import Settings, get_settings

# LogRecord attributes that are not user supplied "extra" fields
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {'message', 'asctime', 'taskName'}

REQUEST_ID_HEADER = "x-request-id"


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields are nested under "extra"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}.{record.funcName}:{record.lineno}",
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry['exception'] = {
                'type': exc_type.__name__,
                'message': str(exc_value),
                'traceback': self.formatException(record.exc_info),
            }

        extra = {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}
        if extra:
            entry['extra'] = extra

        return json.dumps(entry, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Level-colored console output for local development."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        # copy: the same record still reaches the file handlers
        record = logging.makeLogRecord(vars(record))
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def get_log_level(level_str: Optional[str] = None) -> int:
    """Numeric level for a name; unknown names fall back to INFO."""
    level = logging.getLevelName((level_str or get_settings().log_level).upper())
    return level if isinstance(level, int) else logging.INFO


def _rotating_file(path: Path, formatter: str, level: str) -> Dict[str, Any]:
    return {
        'class': 'logging.handlers.RotatingFileHandler',
        'filename': str(path),
        'maxBytes': 10_000_000,
        'backupCount': 5,
        'encoding': 'utf-8',
        'formatter': formatter,
        'level': level,
    }


def build_logging_config(settings: Settings, log_dir: Path) -> Dict[str, Any]:
    """dictConfig for the application, the relay and third-party loggers."""
    console_level = get_log_level(settings.log_level)
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {'()': JSONFormatter},
            'colored': {
                '()': ColoredFormatter,
                'format': '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
                'datefmt': '%H:%M:%S',
            },
            'file': {
                'format': '%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'stream': sys.stdout,
                'formatter': 'colored' if settings.debug else 'json',
                'level': console_level,
            },
            'file': _rotating_file(log_dir / 'notesync.log', 'file', 'DEBUG'),
            'error_file': _rotating_file(log_dir / 'error.log', 'json', 'ERROR'),
        },
        'root': {'handlers': ['console'], 'level': 'WARNING'},
        'loggers': {
            'notesync': {
                'handlers': ['console', 'file', 'error_file'],
                'level': 'DEBUG',
                'propagate': False,
            },
            'uvicorn': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
            'sqlalchemy.engine': {
                'handlers': ['file'],
                'level': 'INFO' if settings.database_echo else 'WARNING',
                'propagate': False,
            },
        },
    }


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure logging once at startup."""
    settings = settings or get_settings()
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(settings, log_dir))
    get_logger('logging').info(
        "Logging configured",
        extra={'log_level': settings.log_level, 'log_dir': str(log_dir)},
    )


def get_logger(name: str) -> logging.Logger:
    """Logger in the ``notesync`` namespace."""
    return logging.getLogger(f"notesync.{name}")


class LoggingMiddleware:
    """ASGI middleware logging each HTTP request with a request id.

    The id comes from the ``X-Request-ID`` header when the client sends one
    and is echoed back on the response. WebSocket traffic is logged by the
    collaboration gateway instead.
    """

    def __init__(self, app, logger_name: str = "http"):
        self.app = app
        self.logger = get_logger(logger_name)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        request_id = headers.get(REQUEST_ID_HEADER.encode(), b"").decode() or uuid.uuid4().hex
        started = time.perf_counter()
        context = {
            'request_id': request_id,
            'method': scope['method'],
            'path': scope['path'],
        }

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + [
                    (REQUEST_ID_HEADER.encode(), request_id.encode())
                ]
                self.logger.info(
                    f"{scope['method']} {scope['path']} -> {message.get('status', 0)}",
                    extra={
                        **context,
                        'status_code': message.get('status', 0),
                        'duration_ms': round((time.perf_counter() - started) * 1000, 2),
                    },
                )
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception as exc:
            self.logger.error(
                f"{scope['method']} {scope['path']} failed",
                extra={
                    **context,
                    'duration_ms': round((time.perf_counter() - started) * 1000, 2),
                    'exception_type': type(exc).__name__,
                },
            )
            raise
