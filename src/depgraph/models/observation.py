"""Audit log of ingested dependency records.

Not part of the graph model; rows are appended when observation
recording is enabled and never read back by the engine.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from depgraph.models.base import Base


class DependencyObservation(Base):
    """One ingested dependency record, as received."""

    __tablename__ = "dependency_observations"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    observed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    connection_id: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
    )

    local_ip: Mapped[str] = mapped_column(String(255), nullable=False)
    local_os: Mapped[str] = mapped_column(String(20), nullable=False)
    remote_ip: Mapped[str] = mapped_column(String(255), nullable=False)
    module: Mapped[str] = mapped_column(String(50), nullable=False)
    local_port: Mapped[int] = mapped_column(nullable=False)
    remote_port: Mapped[int] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("ix_observations_connection_observed", "connection_id", "observed_at"),
    )

    def __repr__(self) -> str:
        return f"<DependencyObservation {self.connection_id} at {self.observed_at}>"
