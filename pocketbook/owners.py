"""Owners (provider logins) and their credential sets.

Credentials follow a replace-on-write policy: saving or updating an owner's
credentials deletes the whole existing key/value set and inserts the new one.
There is no partial-patch path. Deleting an owner relies on ``ON DELETE
CASCADE`` to remove its credentials, payments and payment items.

All functions take a caller-owned ``Session``; callers own the transaction.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import TypedDict

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.orm import Session

from pocketbook_db.models import Credential, Owner, utcnow

from .errors import NotFoundError
from .logging_setup import get_logger

logger = get_logger("pocketbook.owners")


class OwnerDict(TypedDict):
    id: str
    provider: str
    alias: str
    auth_blob: str
    created_at: datetime
    updated_at: datetime


def _row_to_dict(row: Owner) -> OwnerDict:
    return {
        "id": row.id,
        "provider": row.provider,
        "alias": row.alias,
        "auth_blob": row.auth_blob,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


def _replace_credentials(
    session: Session, owner_id: str, credentials: Mapping[str, str], now: datetime
) -> None:
    session.execute(delete(Credential).where(Credential.owner_id == owner_id))
    rows = [
        {
            "id": str(uuid.uuid4()),
            "owner_id": owner_id,
            "key": key,
            "value": value,
            "updated_at": now,
        }
        for key, value in credentials.items()
    ]
    if rows:
        session.execute(insert(Credential), rows)


def has_owners(session: Session) -> bool:
    return bool(session.scalar(select(func.count()).select_from(Owner)))


def list_owners(session: Session) -> list[OwnerDict]:
    """Return all owners, most recently created first."""

    rows = session.execute(select(Owner).order_by(Owner.created_at.desc())).scalars().all()
    return [_row_to_dict(r) for r in rows]


def get_owner(session: Session, owner_id: str) -> Owner:
    owner = session.get(Owner, owner_id)
    if owner is None:
        raise NotFoundError(f"owner not found: {owner_id!r}")
    return owner


def save_owner(
    session: Session,
    *,
    provider: str,
    alias: str,
    auth_blob: str,
    credentials: Mapping[str, str],
) -> str:
    """Create an owner with its initial credential set; return the new id."""

    now = utcnow()
    owner_id = str(uuid.uuid4())
    session.add(
        Owner(
            id=owner_id,
            provider=provider,
            alias=alias,
            auth_blob=auth_blob,
            created_at=now,
            updated_at=now,
        )
    )
    session.flush()
    _replace_credentials(session, owner_id, credentials, now)
    logger.info("saved owner %s (%s) with %d credentials", owner_id, provider, len(credentials))
    return owner_id


def update_owner_alias(session: Session, owner_id: str, *, alias: str) -> OwnerDict:
    owner = get_owner(session, owner_id)
    owner.alias = alias
    owner.updated_at = utcnow()
    session.flush()
    return _row_to_dict(owner)


def delete_owner(session: Session, owner_id: str) -> None:
    """Delete an owner; credentials and payments go with it via cascade."""

    session.execute(delete(Owner).where(Owner.id == owner_id))


def get_credentials(session: Session, owner_id: str) -> dict[str, str]:
    rows = session.execute(
        select(Credential.key, Credential.value).where(Credential.owner_id == owner_id)
    ).all()
    return {key: value for key, value in rows}


def replace_credentials(
    session: Session,
    owner_id: str,
    *,
    auth_blob: str,
    credentials: Mapping[str, str],
) -> None:
    """Store a new auth blob and fully replace the owner's credential set."""

    now = utcnow()
    result = session.execute(
        update(Owner).where(Owner.id == owner_id).values(auth_blob=auth_blob, updated_at=now)
    )
    if result.rowcount == 0:
        raise NotFoundError(f"owner not found: {owner_id!r}")
    _replace_credentials(session, owner_id, credentials, now)


__all__ = [
    "OwnerDict",
    "delete_owner",
    "get_credentials",
    "get_owner",
    "has_owners",
    "list_owners",
    "replace_credentials",
    "save_owner",
    "update_owner_alias",
]
