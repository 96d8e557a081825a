"""
Unit-of-work runner

Every mutating engine call goes through run_atomic: the order/purchase row,
its items and the stock counter writes commit together or not at all.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from stockledger.core.config import settings
from stockledger.core.exceptions import ConflictError, LedgerError, TransactionFailure
from stockledger.core.logging_config import get_logger
from stockledger.db.session import begin_write

logger = get_logger(__name__)

T = TypeVar("T")


async def run_atomic(
    db: AsyncSession,
    operation: Callable[..., Awaitable[T]],
    *args: Any,
    attempts: Optional[int] = None,
    **kwargs: Any) -> T:
    """
    Run operation(db, *args, **kwargs) and commit

    A stale variant version (another writer got there first) reruns the
    whole operation from scratch. Any other failure rolls back and is
    re-raised as a LedgerError; nothing is retried on the caller's behalf.
    """
    attempts = attempts or settings.TX_RETRY_ATTEMPTS
    name = getattr(operation, "__name__", "operation")

    for attempt in range(1, attempts + 1):
        try:
            await begin_write(db)
            result = await operation(db, *args, **kwargs)
            await db.commit()
            return result
        except StaleDataError:
            await db.rollback()
            if attempt >= attempts:
                logger.error(f"❌ {name}: gave up after {attempts} concurrent write conflicts")
                raise TransactionFailure()
            logger.warning(f"{name}: concurrent stock write detected, rerunning ({attempt}/{attempts})")
        except LedgerError:
            await db.rollback()
            raise
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"{name}: integrity error: {e.orig}")
            raise ConflictError("The request conflicts with existing records") from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception(f"❌ {name}: store failure")
            raise TransactionFailure() from e
        except BaseException:
            await db.rollback()
            raise

    raise TransactionFailure()
