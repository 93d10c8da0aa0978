"""SQLAlchemy model for the singleton user_settings row."""

from sqlalchemy import Boolean, Column, Integer, String

from agroguard.database import Base

SETTINGS_ROW_ID = 1


class UserSettingsRow(Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, default=SETTINGS_ROW_ID)
    stress_sensitivity = Column(String(20), nullable=False, default="Standard")
    stress_threshold = Column(Integer, nullable=False, default=20)
    insurance_threshold = Column(Integer, nullable=False, default=25)
    auto_sync = Column(Boolean, nullable=False, default=True)
