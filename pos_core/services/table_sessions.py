"""Table session registry

Sessions go OPEN -> CLOSED and never re-open; a new table turn needs a new
session. At most one OPEN session exists per (branch, table_number), backed by
the unique ``open_key`` column.
"""

import secrets
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pos_core import notifications
from pos_core.config import settings
from pos_core.database import unit_of_work
from pos_core.exceptions import ConflictError, InvalidSelection, NotFound, SessionClosed
from pos_core.models.table_session import TableSession
from pos_core.models.tenant import Branch
from pos_core.notifications import EventPublisher
from pos_core.services.scope import ActorScope

logger = structlog.get_logger()

OPEN = "OPEN"
CLOSED = "CLOSED"
ALL = "ALL"


async def load_branch(
    db: AsyncSession,
    actor: ActorScope,
    branch_id: Optional[UUID],
    for_update: bool = False,
) -> Branch:
    """Resolve and scope-check the branch an operation runs against"""
    branch_id = actor.resolve_branch(branch_id)

    query = select(Branch).where(Branch.id == branch_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    branch = result.scalar_one_or_none()

    if branch is None:
        raise NotFound("Branch", branch_id)
    actor.require_access(branch.organization_id, branch.id)
    return branch


async def create_session(
    db: AsyncSession,
    actor: ActorScope,
    table_number: int,
    publisher: EventPublisher,
    branch_id: Optional[UUID] = None,
) -> TableSession:
    """Open a session for a table; ConflictError if one is already open"""
    if isinstance(table_number, bool) or not isinstance(table_number, int) or table_number < 1:
        raise InvalidSelection("table_number must be a positive integer", table_number=table_number)

    async with unit_of_work(db):
        branch = await load_branch(db, actor, branch_id)
        open_key = TableSession.make_open_key(branch.id, table_number)

        result = await db.execute(
            select(TableSession.id).where(TableSession.open_key == open_key)
        )
        if result.first() is not None:
            raise ConflictError(
                f"Table {table_number} already has an open session",
                table_number=table_number,
            )

        session = TableSession(
            token=secrets.token_urlsafe(settings.session_token_bytes),
            table_number=table_number,
            organization_id=branch.organization_id,
            branch_id=branch.id,
            is_active=True,
            open_key=open_key,
            opened_by=actor.actor_id,
        )
        db.add(session)

    logger.info(
        "Table session opened",
        session_id=str(session.id),
        branch_id=str(session.branch_id),
        table_number=table_number,
    )
    publisher.publish(notifications.qr_session_opened(session))
    return session


async def resolve(db: AsyncSession, token: str) -> TableSession:
    """Find a session by token; closed sessions resolve too"""
    result = await db.execute(select(TableSession).where(TableSession.token == token))
    session = result.scalar_one_or_none()
    if session is None:
        raise NotFound("Table session")
    return session


async def require_open(db: AsyncSession, token: str) -> TableSession:
    session = await resolve(db, token)
    if not session.is_active:
        raise SessionClosed("Table session is closed", session_id=str(session.id))
    return session


async def get_session(db: AsyncSession, actor: ActorScope, session_id: UUID) -> TableSession:
    result = await db.execute(
        select(TableSession)
        .where(TableSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    session = result.scalar_one_or_none()
    if session is None:
        raise NotFound("Table session", session_id)
    actor.require_access(session.organization_id, session.branch_id)
    return session


async def close_session(
    db: AsyncSession,
    actor: ActorScope,
    session_id: UUID,
    publisher: EventPublisher,
) -> TableSession:
    """Close a session. Closing an already closed session is a no-op."""
    async with unit_of_work(db):
        await get_session(db, actor, session_id)

        # Guarded update: only the first of several concurrent closes matches
        result = await db.execute(
            update(TableSession)
            .where(TableSession.id == session_id, TableSession.is_active.is_(True))
            .values(
                is_active=False,
                open_key=None,
                closed_at=datetime.utcnow(),
                closed_by=actor.actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        closed_now = result.rowcount > 0

    session = await get_session(db, actor, session_id)

    if closed_now:
        logger.info("Table session closed", session_id=str(session_id))
        publisher.publish(notifications.qr_session_closed(session))
    else:
        logger.info("Table session already closed", session_id=str(session_id))

    return session


async def list_sessions(
    db: AsyncSession,
    actor: ActorScope,
    status: str = OPEN,
    branch_id: Optional[UUID] = None,
    limit: int = 100,
) -> List[TableSession]:
    query = actor.filter(select(TableSession), TableSession, branch_id)

    status = (status or OPEN).upper()
    if status == OPEN:
        query = query.where(TableSession.is_active.is_(True))
    elif status == CLOSED:
        query = query.where(TableSession.is_active.is_(False))
    elif status != ALL:
        raise InvalidSelection(f"Unknown session status {status}", status=status)

    query = query.order_by(TableSession.created_at.desc()).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
