from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, func

from Assistant.database import Base


# Stores a topic a dashboard news window keeps refreshed in the background
class NewsQuery(Base):
    __tablename__ = "news_queries"

    # One saved query per (owner_id, window_id)
    __table_args__ = (
        Index("ux_news_queries_owner_id_window_id", "owner_id", "window_id", unique=True),
        Index("ix_news_queries_is_active", "is_active"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(64), index=True, nullable=False)
    topic = Column(String(255), nullable=False)
    window_id = Column(String(128), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_fetched = Column(DateTime(timezone=True), nullable=True)
    last_results = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
