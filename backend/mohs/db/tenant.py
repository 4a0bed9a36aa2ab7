from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, TypeVar

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from mohs.core.errors import InvalidArgument, TransactionFailure

T = TypeVar("T")


class TenantScope:
    """
    Tenant-bound handle over a session. Services build every query through it,
    so a query cannot be constructed without the tenant predicate.
    """

    def __init__(self, db: Session, tenant_id: str) -> None:
        if not tenant_id or not str(tenant_id).strip():
            raise InvalidArgument("tenant_id is required")
        self.db = db
        self.tenant_id = str(tenant_id)

    def query(self, model: type[T]) -> Query[T]:
        return self.db.query(model).filter(model.tenant_id == self.tenant_id)

    def query_columns(self, model: type[Any], *columns: Any) -> Query[Any]:
        return self.db.query(*columns).select_from(model).filter(model.tenant_id == self.tenant_id)

    def add(self, row: T) -> T:
        row.tenant_id = self.tenant_id
        self.db.add(row)
        return row

    @contextmanager
    def transaction(self, operation: str) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("{} rolled back for tenant {}: {}", operation, self.tenant_id, exc)
            raise TransactionFailure(f"{operation} failed", details={"error": str(exc)}) from exc
        except Exception:
            self.db.rollback()
            logger.warning("{} rolled back for tenant {}", operation, self.tenant_id)
            raise
