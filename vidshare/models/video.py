"""One row per accepted upload. Rows are never updated; the retention sweeper deletes them all."""
import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from vidshare.database import Base

# 1 = flat passthrough rows (processed_* only, no thumbnail); 2 = original/processed/thumbnail split
VIDEO_SCHEMA_VERSION = 2


class Video(Base):
    __tablename__ = "videos"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    original_filename = Column(String(255), nullable=True)  # generated raw name under originals/
    processed_filename = Column(String(255), nullable=False, unique=True)
    thumbnail_filename = Column(String(255), nullable=True)  # null when no thumbnail was generated
    original_path = Column(String(512), nullable=True)  # filesystem path, transient
    processed_path = Column(String(512), nullable=True)  # public URL
    thumbnail_path = Column(String(512), nullable=True)  # public URL or placeholder
    upload_date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    schema_version = Column(Integer, nullable=False, default=VIDEO_SCHEMA_VERSION)
