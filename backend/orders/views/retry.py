import logging

from orders.exceptions import PersistenceConflict

logger = logging.getLogger(__name__)


def retry_once_on_conflict(operation, *args, **kwargs):
    """
    Run a fulfillment operation, retrying exactly once on PersistenceConflict.
    A second conflict propagates to the exception handler.
    """
    try:
        return operation(*args, **kwargs)
    except PersistenceConflict as exc:
        logger.warning(f"{getattr(operation, '__name__', 'operation')} hit a persistence conflict, retrying once: {exc}")
        return operation(*args, **kwargs)
