from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Timestamped, utcnow

# ---------------------------
# Owners: one row per provider login
# ---------------------------


class Owner(Timestamped, Base):
    __tablename__ = "pb_owners"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    provider: Mapped[str] = mapped_column(String, nullable=False)
    alias: Mapped[str] = mapped_column(String, nullable=False)
    # Opaque auth material captured from the provider session (e.g. a copied
    # cURL command). Never parsed here.
    auth_blob: Mapped[str] = mapped_column(Text, nullable=False)


# ---------------------------
# Credentials: (owner, key) -> value
# ---------------------------


class Credential(Base):
    __tablename__ = "pb_credentials"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    owner_id: Mapped[str] = mapped_column(
        String, ForeignKey("pb_owners.id", ondelete="CASCADE"), nullable=False
    )
    key: Mapped[str] = mapped_column(String, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "key", name="uq_pb_credentials_owner_key"),
        Index("ix_pb_credentials_owner_id", "owner_id"),
    )


__all__ = ["Owner", "Credential"]
