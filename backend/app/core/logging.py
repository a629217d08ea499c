"""
Structured Logging

Every line carries the request id and, once the actor has been resolved,
the acting user and role. Permission denials, task activity and budget
access each get a named logger so they can be routed separately.
"""
import asyncio
import json
import logging
import time
import uuid
from contextvars import ContextVar
from functools import wraps
from typing import Any, Dict, Optional, Tuple

from app.core.config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
request_start_var: ContextVar[Optional[float]] = ContextVar('request_start', default=None)
# (user_id, role value) of the authenticated actor for the current request
actor_var: ContextVar[Optional[Tuple[int, str]]] = ContextVar('actor', default=None)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


def set_actor(user_id: int, role: str) -> None:
    """Attach the resolved actor to log lines for the rest of the request."""
    actor_var.set((user_id, role))


def clear_request_context() -> None:
    request_id_var.set(None)
    request_start_var.set(None)
    actor_var.set(None)


def _elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000, 2)


class StructuredLogger:
    """
    Thin wrapper over a stdlib logger.
    JSON lines in production, one readable line per event everywhere else.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self._as_json = settings.APP_ENV == 'production'

    def _record(self, level: str, message: str, context: Dict[str, Any], error: Optional[Exception]) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            'ts': time.strftime('%Y-%m-%dT%H:%M:%S%z'),
            'level': level,
            'logger': self.name,
            'env': settings.APP_ENV,
            'msg': message,
        }
        request_id = request_id_var.get()
        if request_id:
            record['request_id'] = request_id
        actor = actor_var.get()
        if actor:
            record['actor'] = {'user_id': actor[0], 'role': actor[1]}
        started = request_start_var.get()
        if started:
            record['elapsed_ms'] = _elapsed_ms(started)
        if context:
            record['context'] = context
        if error is not None:
            record['error'] = {'type': type(error).__name__, 'message': str(error)}
        return record

    def _render(self, record: Dict[str, Any]) -> str:
        if self._as_json:
            return json.dumps(record, default=str)

        line = f"[{record.get('request_id', '-')}] {record['msg']}"
        if 'actor' in record:
            line += f" actor={record['actor']['user_id']}/{record['actor']['role']}"
        if 'context' in record:
            line += ' | ' + ' '.join(f"{k}={v}" for k, v in record['context'].items())
        if 'error' in record:
            line += f" | error={record['error']['type']}: {record['error']['message']}"
        if 'elapsed_ms' in record:
            line += f" | {record['elapsed_ms']}ms"
        return line

    def log(self, level: int, message: str, error: Optional[Exception] = None, **context):
        if not self.logger.isEnabledFor(level):
            return
        record = self._record(logging.getLevelName(level), message, context, error)
        self.logger.log(level, self._render(record))

    def debug(self, message: str, **context):
        self.log(logging.DEBUG, message, **context)

    def info(self, message: str, **context):
        self.log(logging.INFO, message, **context)

    def warning(self, message: str, **context):
        self.log(logging.WARNING, message, **context)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        self.log(logging.ERROR, message, error=error, **context)


def get_logger(name: str = 'wedding-planner') -> StructuredLogger:
    return StructuredLogger(name)


api_logger = get_logger('wedding-planner.api')
permissions_logger = get_logger('wedding-planner.permissions')
tasks_logger = get_logger('wedding-planner.tasks')
budget_logger = get_logger('wedding-planner.budget')
db_logger = get_logger('wedding-planner.database')


def log_operation(operation: str, logger: Optional[StructuredLogger] = None):
    """Log start, completion (with timing) and failure of a sync or async call.

        @log_operation("set_policy_override", permissions_logger)
        async def set_policy_override(...): ...
    """
    log = logger or api_logger

    def decorator(func):
        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def wrapper(*args, **kwargs):
                start = time.time()
                log.debug(f"{operation} started")
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    log.error(f"{operation} failed", error=e, duration_ms=_elapsed_ms(start))
                    raise
                log.info(f"{operation} completed", duration_ms=_elapsed_ms(start))
                return result
            return wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.time()
            log.debug(f"{operation} started")
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log.error(f"{operation} failed", error=e, duration_ms=_elapsed_ms(start))
                raise
            log.info(f"{operation} completed", duration_ms=_elapsed_ms(start))
            return result
        return wrapper

    return decorator
