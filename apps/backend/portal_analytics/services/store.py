"""
Persistence adapter for the analytics tables.

Every write is a single row committed on its own; there are no
multi-statement transactions. A failed commit rolls the session back and
re-raises so the caller decides what "failure" means.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from fastapi import Depends
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal_analytics.db import Base, get_db
from portal_analytics.models import AnalyticsSession, KnownVisitor, Organization, Project


class SqlStore:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # tenant lookups (read-only)
    # ------------------------------------------------------------------
    def find_tenant_project(self, identifier: str) -> Optional[Project]:
        stmt = (
            select(Project)
            .where(
                Project.is_tenant.is_(True),
                or_(
                    Project.tenant_tracking_id == identifier,
                    Project.id == identifier,
                    Project.tenant_domain == identifier,
                ),
            )
            .limit(1)
        )
        return self.db.scalars(stmt).first()

    def find_tenant_project_by_domain(self, domain: str) -> Optional[Project]:
        stmt = (
            select(Project)
            .where(Project.is_tenant.is_(True), Project.tenant_domain == domain)
            .limit(1)
        )
        return self.db.scalars(stmt).first()

    def find_organization(self, identifier: str, slug_fragment: str | None = None) -> Optional[Organization]:
        conditions = [Organization.slug == identifier, Organization.id == identifier]
        if slug_fragment:
            conditions.append(func.lower(Organization.slug).like(f"%{slug_fragment.lower()}%"))
        stmt = select(Organization).where(or_(*conditions)).limit(1)
        return self.db.scalars(stmt).first()

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def insert(self, row: Base) -> None:
        with self._writing():
            self.db.add(row)

    def session_exists(self, session_id: str) -> bool:
        return self.db.get(AnalyticsSession, session_id) is not None

    def update_session(self, session_id: str, values: Dict[str, Any]) -> int:
        stmt = (
            update(AnalyticsSession)
            .where(AnalyticsSession.id == session_id)
            .values(**values)
        )
        with self._writing():
            result = self.db.execute(stmt)
        return result.rowcount or 0

    def get_known_visitor(self, visitor_id: str) -> Optional[KnownVisitor]:
        stmt = select(KnownVisitor).where(KnownVisitor.visitor_id == visitor_id).limit(1)
        return self.db.scalars(stmt).first()

    def update_known_visitor(self, visitor_id: str, values: Dict[str, Any]) -> int:
        stmt = (
            update(KnownVisitor)
            .where(KnownVisitor.visitor_id == visitor_id)
            .values(**values)
        )
        with self._writing():
            result = self.db.execute(stmt)
        return result.rowcount or 0

    @contextmanager
    def _writing(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise


def get_store(db: Session = Depends(get_db)) -> SqlStore:
    return SqlStore(db)
