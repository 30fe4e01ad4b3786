from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Integer, DateTime, JSON
from db.database import Base


class Media(Base):
    __tablename__ = "media"

    media_id = Column(String(64), primary_key=True)
    org_id = Column(String(64), nullable=False, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    storage_provider = Column(String(20), nullable=False)  # 'local', 's3'
    storage_key = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    original_file_name = Column(Text, nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    access = Column(String(10), default="public")
    caption = Column(Text, default="")
    entity_type = Column(String(30), nullable=True)
    entity_id = Column(String(64), nullable=True)
    extra = Column(JSON, default=dict)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
