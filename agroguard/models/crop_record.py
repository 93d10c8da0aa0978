"""SQLAlchemy model for crop_records table (READ-WRITE)."""

from sqlalchemy import JSON, BigInteger, Boolean, Column, Integer, String, Text

from agroguard.database import Base


class CropRecordRow(Base):
    """One confirmed crop-health analysis."""

    __tablename__ = "crop_records"

    id = Column(String(64), primary_key=True)
    timestamp = Column(BigInteger, nullable=False, index=True)  # epoch ms
    crop_type = Column(String(128), nullable=False)
    image_ref = Column(Text)

    status = Column(String(20), nullable=False)  # Healthy / Stressed / Diseased / Critical
    analysis = Column(JSON, nullable=False)
    feedback = Column(Text)

    # Offline sync queue
    is_pending_sync = Column(Boolean, nullable=False, default=False, index=True)
    sync_attempts = Column(Integer, nullable=False, default=0)
    last_sync_error = Column(Text)
