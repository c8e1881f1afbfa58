from sqlalchemy import Column, Integer, Float, DateTime, Boolean, JSON, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base


class UserStatistics(Base):
    """Per-user page activity rollup"""
    __tablename__ = "user_statistics"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pages_visited = Column(JSON, default=list)  # [{"page_name": str, "visit_count": int}]
    total_time_spent = Column(Float, default=0)  # seconds
    last_active = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    is_deleted = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="statistics")

    def __repr__(self):
        return f"<UserStatistics for user {self.user_id}>"
