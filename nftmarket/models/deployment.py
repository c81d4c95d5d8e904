from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from nftmarket.db.base import Base


class Deployment(Base):
    """
    One initialized contract-like component (NFT collection, license book,
    funds token, marketplace). The row only exists once `initialize` ran,
    so its presence is the initialized flag.
    """

    __tablename__ = "deployments"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)

    name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    symbol: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    owner: Mapped[str] = mapped_column(String(42), nullable=False)

    # initializer arguments (e.g. the marketplace's related-component addresses)
    config_json: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    initialized_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_deployments_kind", "kind"),
    )
