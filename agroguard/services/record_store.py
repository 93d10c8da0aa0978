"""Record store: crop records and the singleton user settings on SQLAlchemy."""

import logging
from functools import lru_cache

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from agroguard.database import SyncSessionLocal, safe_json_loads
from agroguard.models.crop_record import CropRecordRow
from agroguard.models.user_settings import SETTINGS_ROW_ID, UserSettingsRow
from agroguard.schemas.analysis import CropRecord, UserSettings, YieldAnalysis

logger = logging.getLogger(__name__)

# CropRecord attribute -> column
_FIELD_COLUMNS = {
    "timestamp": "timestamp",
    "crop_type": "crop_type",
    "image_url": "image_ref",
    "status": "status",
    "analysis": "analysis",
    "feedback": "feedback",
    "is_pending_sync": "is_pending_sync",
    "sync_attempts": "sync_attempts",
    "last_sync_error": "last_sync_error",
}


class RecordExistsError(ValueError):
    pass


def _row_to_record(row: CropRecordRow) -> CropRecord:
    return CropRecord(
        id=row.id,
        timestamp=row.timestamp,
        crop_type=row.crop_type,
        image_url=row.image_ref,
        status=row.status,
        analysis=YieldAnalysis.model_validate(safe_json_loads(row.analysis)),
        feedback=row.feedback,
        is_pending_sync=bool(row.is_pending_sync),
        sync_attempts=row.sync_attempts or 0,
        last_sync_error=row.last_sync_error,
    )


def _column_value(field: str, value):
    if field == "analysis" and isinstance(value, YieldAnalysis):
        return value.model_dump(by_alias=True)
    if field == "status" and hasattr(value, "value"):
        return value.value
    return value


class RecordStore:
    def __init__(self, session_factory: sessionmaker = SyncSessionLocal):
        self.session_factory = session_factory

    def get_records(self, limit: int | None = None, offset: int = 0,
                    pending: bool | None = None) -> list[CropRecord]:
        """Records, most recent first; `pending` filters on the sync flag when given."""
        with self.session_factory() as session:
            q = session.query(CropRecordRow)
            if pending is not None:
                q = q.filter(CropRecordRow.is_pending_sync.is_(pending))
            q = q.order_by(CropRecordRow.timestamp.desc())
            if offset:
                q = q.offset(int(offset))
            if limit is not None:
                q = q.limit(int(limit))
            return [_row_to_record(r) for r in q.all()]

    def get_record(self, record_id: str) -> CropRecord | None:
        with self.session_factory() as session:
            row = session.get(CropRecordRow, record_id)
            return _row_to_record(row) if row else None

    def get_pending_records(self) -> list[CropRecord]:
        """Records awaiting cloud confirmation, oldest first."""
        with self.session_factory() as session:
            rows = (
                session.query(CropRecordRow)
                .filter(CropRecordRow.is_pending_sync.is_(True))
                .order_by(CropRecordRow.timestamp.asc())
                .all()
            )
            return [_row_to_record(r) for r in rows]

    def insert_record(self, record: CropRecord) -> CropRecord:
        row = CropRecordRow(id=record.id)
        for field, column in _FIELD_COLUMNS.items():
            setattr(row, column, _column_value(field, getattr(record, field)))

        with self.session_factory() as session:
            try:
                session.add(row)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise RecordExistsError(f"Record {record.id} already exists") from e
            except SQLAlchemyError:
                session.rollback()
                raise
        logger.info("Saved record %s (%s, pending=%s)", record.id, record.crop_type, record.is_pending_sync)
        return record

    def update_record(self, record_id: str, **changes) -> CropRecord | None:
        """Partial merge of CropRecord fields; returns None for an unknown id."""
        unknown = set(changes) - set(_FIELD_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown record fields: {sorted(unknown)}")

        with self.session_factory() as session:
            row = session.get(CropRecordRow, record_id)
            if row is None:
                return None
            for field, value in changes.items():
                setattr(row, _FIELD_COLUMNS[field], _column_value(field, value))
            try:
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise
            return _row_to_record(row)

    def update_feedback(self, record_id: str, feedback: str) -> CropRecord | None:
        return self.update_record(record_id, feedback=feedback)

    def delete_record(self, record_id: str) -> bool:
        with self.session_factory() as session:
            row = session.get(CropRecordRow, record_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
        logger.info("Deleted record %s", record_id)
        return True

    def get_settings(self) -> UserSettings:
        with self.session_factory() as session:
            row = session.get(UserSettingsRow, SETTINGS_ROW_ID)
            if row is None:
                return UserSettings()
            return UserSettings(
                stress_sensitivity=row.stress_sensitivity,
                stress_threshold=row.stress_threshold,
                insurance_threshold=row.insurance_threshold,
                auto_sync=row.auto_sync,
            )

    def save_settings(self, settings: UserSettings) -> UserSettings:
        with self.session_factory() as session:
            row = session.get(UserSettingsRow, SETTINGS_ROW_ID)
            if row is None:
                row = UserSettingsRow(id=SETTINGS_ROW_ID)
                session.add(row)
            row.stress_sensitivity = settings.stress_sensitivity
            row.stress_threshold = settings.stress_threshold
            row.insurance_threshold = settings.insurance_threshold
            row.auto_sync = settings.auto_sync
            session.commit()
        return settings


@lru_cache
def get_record_store() -> RecordStore:
    return RecordStore()
