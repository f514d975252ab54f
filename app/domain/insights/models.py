from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.domain.users.models import User  # noqa: F401  (relationship target)


class InsightSnapshot(Base):
    """One generated insight, stored append-only per owner and kind."""

    __tablename__ = "insight_snapshots"
    __table_args__ = (
        Index(
            "ix_insight_snapshots_owner_kind_created",
            "owner_id",
            "kind",
            "created_at",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    kind = Column(String(32), nullable=False)  # budget, investment_strategy, score
    inputs = Column(JSON, nullable=True)
    result = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    owner = relationship("User", backref="insight_snapshots")


__all__ = ["InsightSnapshot"]
