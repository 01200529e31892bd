import functools
import inspect
import logging
import time

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = {"api_key", "private_key", "authorization", "password", "token", "bearer", "secret", "cookie"}

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _redact(value):
    """Recursively redact sensitive keys in nested structures."""
    try:
        if isinstance(value, dict):
            return {k: ("***" if str(k).lower() in SENSITIVE_KEYS else _redact(v)) for k, v in value.items()}
        if isinstance(value, list):
            return [_redact(v) for v in value]
        if isinstance(value, tuple):
            return tuple(_redact(v) for v in value)
    except Exception:
        # If anything goes wrong during redaction, fallback to original value
        return value
    return value


def timed_call(func):
    """
    Log duration of an async method call.

    When the instance has ``debug`` set, the (redacted) arguments and
    return value are logged at DEBUG level as well.
    """
    qualname = func.__qualname__
    if not inspect.iscoroutinefunction(func):
        raise TypeError(f"Function {qualname} is not a coroutine function. "
                        f"timed_call can only be applied to async functions.")

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        debug = getattr(self, 'debug', False)
        start_time = time.monotonic()
        logger.info("Executing %s...", qualname)
        if debug:
            logger.debug("%s arguments: %s", qualname, _redact(list(args)))
        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            logger.error("%s failed after %.4f seconds: %s", qualname, time.monotonic() - start_time, e)
            raise
        execution_time = time.monotonic() - start_time
        logger.info("%s execution time: %.4f seconds", qualname, execution_time)
        if debug:
            logger.debug("%s returned: %s", qualname, _redact(result))
        return result

    return wrapper


def configure_logging(level="INFO") -> None:
    """Root logging setup used by the command line entry point."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
