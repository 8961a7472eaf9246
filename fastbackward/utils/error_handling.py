import functools
import logging
from fastbackward.utils.exceptions import FastBackwardException, ModelFittingError


def handle_engine_errors(operation_name: str):
    """
    Wrap a CLI-facing step so that foreign errors surface as ModelFittingError.

    Package exceptions pass through untouched. The failure is logged on the
    ``logger`` attribute of the first argument when it has one, otherwise on
    the wrapped function's module logger.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except FastBackwardException:
                raise
            except Exception as e:
                owner_logger = getattr(args[0], 'logger', None) if args else None
                logger = owner_logger or logging.getLogger(func.__module__)
                logger.error(f"{operation_name} failed: {e}", exc_info=True)
                raise ModelFittingError(f"{operation_name} failed: {str(e)}") from e
        return wrapper
    return decorator
