"""Shared plumbing for database-backed stores."""
from contextlib import contextmanager
import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from prairiemed.utils.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class SQLStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def guard(self, operation: str):
        """Turn driver/ORM failures into StoreUnavailableError after rolling back."""
        try:
            yield
        except SQLAlchemyError:
            logger.exception("Store operation failed: %s", operation)
            try:
                self.db.rollback()
            except SQLAlchemyError:
                logger.exception("Rollback failed after %s", operation)
            raise StoreUnavailableError()
