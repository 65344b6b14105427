"""
Organization model.

An organization is the tenant boundary: roles, members and join requests are
all scoped by organization id. It is reachable by a globally unique URL slug
and joinable through a globally unique join code.
"""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_ulid


class Organization(Base, TimestampMixin):
    __tablename__ = "organizations"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    join_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    
    # Display settings chosen at onboarding
    emoji: Mapped[str | None] = mapped_column(String(16), nullable=True)
    color: Mapped[str | None] = mapped_column(String(16), nullable=True)
    
    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, slug={self.slug!r})>"
