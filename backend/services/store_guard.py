import asyncio
import logging
from contextlib import asynccontextmanager
from sqlalchemy.exc import DBAPIError, IntegrityError, TimeoutError as PoolTimeout
from errors import Timeout, Unavailable

logger = logging.getLogger(__name__)


@asynccontextmanager
async def bounded(operation: str, seconds: float):
    """Run a store operation within ``seconds``, mapping infrastructure failures.

    Raises ``Timeout`` when the deadline passes (lock waits included) and
    ``Unavailable`` when the database cannot be reached. Yields the underlying
    ``asyncio.Timeout`` so a caller can lift the deadline once its work is
    durable.
    """
    try:
        async with asyncio.timeout(seconds) as deadline:
            yield deadline
    except TimeoutError:
        logger.warning(f"{operation} exceeded {seconds}s")
        raise Timeout() from None
    except IntegrityError:
        # Constraint violations belong to the caller.
        raise
    except (DBAPIError, PoolTimeout, OSError) as e:
        # asyncpg surfaces refused or dropped connections as plain OSError.
        logger.error(f"{operation} failed against the database: {e}")
        raise Unavailable() from e
