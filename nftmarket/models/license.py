from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from nftmarket.db.base import Base


class License(Base):
    """
    Immutable license of a token to a licensee for [term_start, term_end]
    (epoch ms, both inclusive). No update or extension: a new grant is a new row.
    """

    __tablename__ = "licenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # license component the grant was recorded in
    license_contract: Mapped[str] = mapped_column(String(42), nullable=False)

    collection: Mapped[str] = mapped_column(String(42), nullable=False)
    token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    licensee: Mapped[str] = mapped_column(String(42), nullable=False)
    grantor: Mapped[str] = mapped_column(String(42), nullable=False)

    term_units: Mapped[int] = mapped_column(Integer, nullable=False)
    term_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    term_end: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("term_units >= 1", name="ck_licenses_term_positive"),
        CheckConstraint("term_end >= term_start", name="ck_licenses_window"),
        Index("ix_licenses_lookup", "license_contract", "collection", "token_id", "licensee"),
    )
