import logging
from contextlib import contextmanager
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from .....exceptions import APIException, StorageError

logger = logging.getLogger(__name__)


class SqlRepository:
    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _guard(self, operation: str):
        """Roll back and surface driver failures as StorageError."""
        try:
            yield
        except APIException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error during {operation}: {e}")
            self.session.rollback()
            raise StorageError(f"{operation} failed") from e
