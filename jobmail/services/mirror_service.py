"""
Best-effort mirroring of job applications to the external record store.

These functions run after the primary transaction has committed, usually as
FastAPI background tasks. They never raise: failures are logged and the
authoritative database row is left as it is.
"""
import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session, sessionmaker

from jobmail.db.models.job_application import JobApplication
from jobmail.services.record_mirror import RecordMirror

logger = logging.getLogger(__name__)

# Schedules func(*args) to run later, e.g. BackgroundTasks.add_task
MirrorDispatch = Callable[..., Any]


def run_inline(func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """Dispatch that runs the mirror call immediately (scripts and tests)."""
    func(*args, **kwargs)


def session_factory_for(db: Session) -> sessionmaker:
    """Session factory bound to the same engine as the request session."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind())


def application_fields(application: JobApplication) -> Dict[str, Any]:
    """Full Airtable field set for an application."""
    return {
        "UserID": str(application.user_id),
        "CompanyName": application.company_name,
        "JobTitle": application.job_title,
        "JobDescription": application.job_description,
        "AdditionalDetails": application.additional_details,
        "ResumeUrl": application.resume_url,
        "GeneratedEmail": application.generated_email,
        "Status": application.status,
        "SentAt": application.sent_at.isoformat() if application.sent_at else None,
    }


def mirror_application_created(
    mirror: Optional[RecordMirror],
    session_factory: sessionmaker,
    application_id: int,
    fields: Dict[str, Any],
) -> Optional[str]:
    """
    Create the mirror record and store its ID on the application.

    Returns:
        The external record ID, or None if mirroring failed or is disabled
    """
    if mirror is None:
        return None

    try:
        external_id = mirror.upsert(None, fields)
    except Exception as e:
        logger.error(f"Airtable sync error: application_id={application_id}, error={e}")
        return None

    db = session_factory()
    try:
        db.query(JobApplication).filter(JobApplication.id == application_id).update(
            {JobApplication.mirror_record_id: external_id},
            synchronize_session=False,
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(
            f"Failed to store mirror record id: application_id={application_id}, "
            f"mirror_record_id={external_id}, error={e}"
        )
        return None
    finally:
        db.close()

    logger.info(f"Application mirrored: application_id={application_id}, mirror_record_id={external_id}")
    return external_id


def _stored_record_id(session_factory: sessionmaker, application_id: int) -> Optional[str]:
    db = session_factory()
    try:
        return db.query(JobApplication.mirror_record_id).filter(
            JobApplication.id == application_id
        ).scalar()
    finally:
        db.close()


def mirror_application_changed(
    mirror: Optional[RecordMirror],
    session_factory: sessionmaker,
    application_id: int,
    external_id: Optional[str],
    changed_fields: Dict[str, Any],
    full_fields: Dict[str, Any],
) -> None:
    """
    Push changed fields to the mirror record.

    The external ID is re-read when the task runs, since the create task
    may have stored it after this change was scheduled. Applications that
    still have none (their first sync failed) get a full create instead so
    the mirror catches up.
    """
    if mirror is None:
        return

    if not external_id:
        try:
            external_id = _stored_record_id(session_factory, application_id)
        except Exception as e:
            logger.error(f"Failed to read mirror record id: application_id={application_id}, error={e}")
            return

    if not external_id:
        mirror_application_created(mirror, session_factory, application_id, full_fields)
        return

    try:
        mirror.update(external_id, changed_fields)
    except Exception as e:
        logger.error(
            f"Airtable update error: application_id={application_id}, "
            f"mirror_record_id={external_id}, error={e}"
        )
