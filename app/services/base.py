import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import AppException, ConcurrentModificationError


class BaseService:
    """
    Common plumbing for session-bound services.

    Services never commit piecemeal: each public operation runs inside
    `transaction()`, which commits once or rolls everything back.
    """

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(self.__class__.__module__)

    def log_warning(self, message: str, **context: Any) -> None:
        self._logger.warning(message, extra=context)

    @contextmanager
    def transaction(self, operation: str, **context: Any) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except AppException:
            self.db.rollback()
            raise
        except StaleDataError:
            self.db.rollback()
            self._logger.warning(
                f"Concurrent modification during {operation}",
                extra={"operation": operation, **context},
            )
            raise ConcurrentModificationError()
        except Exception:
            self.db.rollback()
            self._logger.error(
                f"Unexpected error in {operation}",
                exc_info=True,
                extra={"operation": operation, **_loggable(context)},
            )
            raise


def _loggable(context: dict) -> dict:
    """Render context values that the JSON formatter cannot serialize."""
    safe = {}
    for key, value in context.items():
        if hasattr(value, "model_dump"):
            safe[key] = value.model_dump(mode="json")
        elif isinstance(value, (str, int, float, bool, type(None), list, dict)):
            safe[key] = value
        else:
            safe[key] = str(value)
    return safe
