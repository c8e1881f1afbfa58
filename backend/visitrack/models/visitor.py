from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, Index, func, false
from ..database import Base


class Visitor(Base):
    """Site visitor, one active row per IP address"""
    __tablename__ = "visitors"

    id = Column(Integer, primary_key=True, index=True)
    ip_address = Column(String(45), nullable=False, index=True)  # IPv4 or IPv6
    # {country, city, country_code, latitude, longitude, coordinates: [lng, lat]}
    location = Column(JSON, nullable=True)
    device_info = Column(String(100), default="Unknown")
    browser = Column(String(100), default="Unknown")
    os = Column(String(100), default="Unknown")
    referrer = Column(String(512), default="")
    visit_count = Column(Integer, nullable=False, default=1)
    last_visited_at = Column(DateTime(timezone=True), server_default=func.now())
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # At most one active visitor per IP; soft-deleted rows are not constrained
    __table_args__ = (
        Index(
            'uix_visitors_active_ip',
            'ip_address',
            unique=True,
            sqlite_where=is_deleted == false(),
            postgresql_where=is_deleted == false(),
        ),
    )

    def __repr__(self):
        return f"<Visitor {self.id} {self.ip_address} x{self.visit_count}>"
