"""
Helpers for working with SQLAlchemy sessions in a dialect-agnostic way.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def resolve_session_bind(session: Session) -> Optional[Connection | Engine]:
    """Return the engine/connection bound to a session without direct .bind access."""
    try:
        bind = session.get_bind()
        if bind is not None:
            return bind
    except Exception:
        bind = None

    try:
        insp = inspect(session)
    except Exception:
        return None

    return getattr(insp, "bind", None)


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """
    Return SQLAlchemy dialect name without touching Session.bind directly.

    Falls back to ``default`` when the bound engine cannot be resolved.
    """
    bind = resolve_session_bind(session)
    if bind is None:
        return default
    dialect = getattr(bind, "dialect", None)
    name = getattr(dialect, "name", None)
    return name or default


def apply_statement_timeout(session: Session, timeout_ms: int) -> None:
    """
    Bound every statement of the current transaction on PostgreSQL.

    ``SET LOCAL`` expires with the transaction, so pooled connections are not
    affected. Other dialects have no equivalent and are left untouched.
    """
    if get_dialect_name(session) != "postgresql":
        return
    session.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
    logger.debug("Applied statement timeout of %sms", timeout_ms)
