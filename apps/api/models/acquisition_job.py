"""Movie acquisition job model."""

from sqlalchemy import CheckConstraint, Column, String, DateTime, Index, Integer, text

from database import Base


JOB_STATUSES = ("queued", "starting", "downloading", "preparing", "ready", "error", "deleted")
ACTIVE_JOB_STATUSES = ("queued", "starting", "downloading", "preparing", "ready")
TERMINAL_JOB_STATUSES = ("ready", "error", "deleted")

_ACTIVE_TITLE_PREDICATE = text(
    "status IN ('queued', 'starting', 'downloading', 'preparing', 'ready')"
)


class AcquisitionJob(Base):
    """One tracked attempt to fetch a title from Usenet and stage it for streaming."""

    __tablename__ = "acquisition_jobs"

    job_id = Column(String, primary_key=True)
    title_id = Column(Integer, nullable=False, index=True)
    status = Column(String, nullable=False, default="queued", index=True)
    progress = Column(Integer, nullable=True)
    release_title = Column(String, nullable=True)
    release_id = Column(String, nullable=True)
    error_message = Column(String, nullable=True)
    storage_key = Column(String, nullable=True)
    callback_sequence = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)
    ready_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_watched_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('queued', 'starting', 'downloading', 'preparing', 'ready', 'error', 'deleted')",
            name="ck_acquisition_jobs_status",
        ),
        # At most one in-flight or ready job per title; errored and deleted jobs fall out.
        Index(
            "uq_acquisition_jobs_active_title",
            "title_id",
            unique=True,
            sqlite_where=_ACTIVE_TITLE_PREDICATE,
            postgresql_where=_ACTIVE_TITLE_PREDICATE,
        ),
    )
