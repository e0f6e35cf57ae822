"""
Database utilities for transaction management and error handling.

Provides a transaction context manager that commits on success, rolls back
on any failure, and converts SQLAlchemy errors into application exceptions.
"""

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qrcheckin.exceptions import ConflictError, DatabaseError
from qrcheckin.logging_config import get_contextual_logger


def create_database_error_from_exception(
    e: SQLAlchemyError, operation: str = None, table: str = None
) -> DatabaseError | ConflictError:
    """Convert SQLAlchemy exception to an application exception."""
    if isinstance(e, IntegrityError):
        message = "Data integrity constraint violated"
        if "UNIQUE" in str(e).upper() or "DUPLICATE" in str(e).upper():
            return ConflictError(
                message="Duplicate entry - record already exists", operation=operation
            )
        if "NOT NULL constraint failed" in str(e):
            message = "Required field cannot be empty"
        elif "FOREIGN KEY constraint failed" in str(e):
            message = "Referenced record does not exist"
    elif isinstance(e, OperationalError):
        message = "Database connection or operational error"
    else:
        message = "Database operation failed"

    return DatabaseError(message=message, operation=operation, table=table)


class DatabaseTransactionManager:
    """Manages database transactions with automatic rollback on errors."""

    def __init__(self, session: AsyncSession, operation: str = "database_operation"):
        self.session = session
        self.operation = operation
        self.logger = get_contextual_logger("database", operation=operation)

    async def __aenter__(self):
        """Start transaction."""
        self.logger.debug(f"Starting database transaction for {self.operation}")
        return self.session

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Commit on success, roll back on any error."""
        if exc_type is None:
            try:
                await self.session.commit()
            except SQLAlchemyError as e:
                await self.session.rollback()
                self.logger.warning(
                    f"Commit failed for {self.operation}: {e}",
                    extra={"error_code": type(e).__name__},
                )
                raise create_database_error_from_exception(e, self.operation) from e

            self.logger.debug(f"Transaction committed successfully for {self.operation}")
            return False

        await self.session.rollback()
        self.logger.debug(
            f"Transaction rolled back in {self.operation}: {exc_val!r}",
            extra={"error_code": exc_type.__name__},
        )

        # Convert SQLAlchemy exceptions to application exceptions
        if isinstance(exc_val, SQLAlchemyError):
            raise create_database_error_from_exception(
                exc_val, self.operation
            ) from exc_val

        return False


def database_transaction(
    session: AsyncSession, operation: str = "database_operation"
) -> DatabaseTransactionManager:
    """
    Context manager for database transactions with automatic error handling.

    Args:
        session: Session the transaction runs on
        operation: Name of the operation for logging

    Yields:
        AsyncSession: The same session, inside the transaction
    """
    return DatabaseTransactionManager(session, operation)
