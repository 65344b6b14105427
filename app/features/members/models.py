"""
Organization membership model.
"""
from sqlalchemy import String, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_ulid


class Member(Base, TimestampMixin):
    """
    Join of a user identity and an organization.

    ``is_admin`` members implicitly hold every permission in the organization.
    ``role_id`` is optional; a member without a role holds no permissions
    beyond membership itself.
    """
    __tablename__ = "org_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_org_members_organization_user"),
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
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    
    # Deleting a referenced role is guarded in the role store, never cascaded
    role_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("roles.id"),
        nullable=True,
        index=True
    )
    
    def __repr__(self) -> str:
        return f"<Member(id={self.id}, user_id={self.user_id}, org_id={self.organization_id}, admin={self.is_admin})>"
