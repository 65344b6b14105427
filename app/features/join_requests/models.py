"""
Join request model.

Users ask to join an organization by submitting its join code. Admins approve
or reject the request exactly once.
"""
from datetime import datetime
import enum
from sqlalchemy import String, ForeignKey, DateTime, Text, Index, Enum as SQLEnum, text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, generate_ulid, utcnow


class JoinRequestStatus(str, enum.Enum):
    """Status of join requests. ``pending`` is the only non-terminal state."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class JoinRequest(Base):
    __tablename__ = "join_requests"
    __table_args__ = (
        # At most one pending request per (organization, user)
        Index(
            "uq_join_requests_one_pending",
            "organization_id",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    status: Mapped[JoinRequestStatus] = mapped_column(
        SQLEnum(
            JoinRequestStatus,
            name="join_request_status",
            native_enum=False,
            length=16,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=JoinRequestStatus.PENDING,
        nullable=False,
        index=True
    )
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    # Review
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    
    def __repr__(self) -> str:
        return f"<JoinRequest(id={self.id}, user_id={self.user_id}, org_id={self.organization_id}, status={self.status})>"
