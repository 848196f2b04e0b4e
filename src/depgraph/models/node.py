"""Node model: a host in the dependency graph, keyed by network address."""

from enum import Enum
from typing import Any

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from depgraph.models.base import Base, TimestampMixin


class OperatingSystem(str, Enum):
    """Operating system reported for a host."""

    LINUX = "Linux"
    WINDOWS = "Windows"
    MAC = "Mac"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> "OperatingSystem":
        """Parse an OS name, mapping anything unrecognized to UNKNOWN."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        normalized = value.strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return cls.UNKNOWN

    @property
    def is_known(self) -> bool:
        return self is not OperatingSystem.UNKNOWN


class NodeRole(str, Enum):
    """Side of an observation a host was seen on. Descriptive only."""

    LOCAL = "Local"
    REMOTE = "Remote"


def merge_os(stored: OperatingSystem, incoming: OperatingSystem) -> OperatingSystem:
    """Reconcile a stored OS with an incoming one.

    A known OS is never replaced by UNKNOWN; any known incoming value wins.
    """
    if incoming.is_known:
        return incoming
    return stored


class Node(Base, TimestampMixin):
    """Host node (graph vertex)."""

    __tablename__ = "nodes"

    id: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )

    os: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OperatingSystem.UNKNOWN.value,
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "os IN ('Linux', 'Windows', 'Mac', 'Unknown')",
            name="ck_nodes_os",
        ),
        CheckConstraint("role IN ('Local', 'Remote')", name="ck_nodes_role"),
    )

    def __repr__(self) -> str:
        return f"<Node {self.id} os={self.os} role={self.role}>"
