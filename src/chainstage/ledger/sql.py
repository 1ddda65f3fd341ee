from __future__ import annotations

from datetime import datetime
from typing import Iterable, Tuple

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from chainstage.ledger.base import DeploymentLedger
from chainstage.ledger.models import LedgerEntry


class Base(DeclarativeBase):
    pass


class LedgerRow(Base):
    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    network: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    unit_id: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    template: Mapped[str] = mapped_column(String(255), nullable=False)
    args_fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)
    publish_ref: Mapped[str] = mapped_column(String(255), nullable=False)
    block_number: Mapped[int | None] = mapped_column(Integer)
    newly_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (UniqueConstraint("network", "unit_id", name="uq_network_unit"),)

    def to_entry(self) -> LedgerEntry:
        return LedgerEntry(
            address=self.address,
            template=self.template,
            args_fingerprint=self.args_fingerprint,
            publish_ref=self.publish_ref,
            block_number=self.block_number,
            newly_published=self.newly_published,
            recorded_at=self.recorded_at,
        )


class SqlLedger(DeploymentLedger):
    """Ledger stored in a relational database; one transaction per record."""

    def __init__(self, url: str = "sqlite:///deployments.db", engine: Engine | None = None) -> None:
        super().__init__()
        self._engine = engine or create_engine(url, future=True)
        Base.metadata.create_all(self._engine)

    def _read_all(self, network: str) -> Iterable[Tuple[str, LedgerEntry]]:
        stmt = select(LedgerRow).where(LedgerRow.network == network).order_by(LedgerRow.unit_id)
        with Session(self._engine) as session:
            return [(row.unit_id, row.to_entry()) for row in session.scalars(stmt)]

    def _write(self, network: str, unit_id: str, entry: LedgerEntry) -> None:
        stmt = select(LedgerRow).where(
            LedgerRow.network == network, LedgerRow.unit_id == unit_id
        )
        with Session(self._engine) as session, session.begin():
            row = session.scalars(stmt).one_or_none()
            if row is None:
                row = LedgerRow(network=network, unit_id=unit_id)
                session.add(row)
            row.address = entry.address
            row.template = entry.template
            row.args_fingerprint = entry.args_fingerprint
            row.publish_ref = entry.publish_ref
            row.block_number = entry.block_number
            row.newly_published = entry.newly_published
            row.recorded_at = entry.recorded_at

    def dispose(self) -> None:
        self._engine.dispose()
