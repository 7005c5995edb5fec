"""
Job application lifecycle service.

Creates applications (one credit each) and moves them through
draft -> sent -> archived. Every read and write is scoped to the owning
user; another user's application is reported as not found.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from jobmail.core.exceptions import (
    ApplicationNotFoundError,
    ApplicationStateError,
    InsufficientCreditsError,
)
from jobmail.db.models.job_application import JobApplication, DRAFT, SENT, ARCHIVED
from jobmail.services.credit_service import check_and_reserve, get_credit_balance
from jobmail.services.email_generator import generate_from_details
from jobmail.services.mirror_service import (
    MirrorDispatch,
    application_fields,
    mirror_application_changed,
    mirror_application_created,
    run_inline,
    session_factory_for,
)
from jobmail.services.record_mirror import RecordMirror

logger = logging.getLogger(__name__)

APPLICATION_FIELDS = ("company_name", "job_title", "job_description", "additional_details", "resume_url")


def _schedule_change(
    db: Session,
    application: JobApplication,
    changed_fields: Dict[str, Any],
    mirror: Optional[RecordMirror],
    dispatch: MirrorDispatch,
) -> None:
    if mirror is None:
        return
    dispatch(
        mirror_application_changed,
        mirror,
        session_factory_for(db),
        application.id,
        application.mirror_record_id,
        changed_fields,
        application_fields(application),
    )


def create_application(
    db: Session,
    user_id: int,
    details: Dict[str, Any],
    mirror: Optional[RecordMirror] = None,
    dispatch: MirrorDispatch = run_inline,
) -> JobApplication:
    """
    Generate the email and store a new draft application, consuming one credit.

    The credit decrement and the insert are committed together; if either
    fails, neither takes effect. Mirroring is scheduled only after commit.

    Args:
        db: Database session
        user_id: Owning user ID
        details: company_name, job_title and optional job_description,
            additional_details, resume_url
        mirror: Record mirror, or None when mirroring is disabled
        dispatch: How to run the mirror call (BackgroundTasks.add_task in routes)

    Returns:
        The persisted application in draft state

    Raises:
        InsufficientCreditsError: If the user has no credits left
    """
    generated_email = generate_from_details(details)

    if not check_and_reserve(db, user_id):
        db.rollback()
        raise InsufficientCreditsError(credits=get_credit_balance(db, user_id))

    application = JobApplication(
        user_id=user_id,
        generated_email=generated_email,
        status=DRAFT,
        **{field: details.get(field) for field in APPLICATION_FIELDS},
    )

    try:
        db.add(application)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Failed to create application, credit released: user_id={user_id}", exc_info=True)
        raise

    db.refresh(application)
    logger.info(
        f"Application created: application_id={application.id}, user_id={user_id}, "
        f"company={application.company_name}"
    )

    if mirror is not None:
        dispatch(
            mirror_application_created,
            mirror,
            session_factory_for(db),
            application.id,
            application_fields(application),
        )

    return application


def get_application(db: Session, application_id: int, user_id: int) -> JobApplication:
    """
    Get an application owned by the user.

    Raises:
        ApplicationNotFoundError: If missing or owned by someone else
    """
    application = db.query(JobApplication).filter(
        JobApplication.id == application_id,
        JobApplication.user_id == user_id,
    ).first()

    if not application:
        raise ApplicationNotFoundError(application_id=application_id)
    return application


def list_applications(db: Session, user_id: int, status: Optional[str] = None) -> List[JobApplication]:
    """List a user's applications, newest first."""
    query = db.query(JobApplication).filter(JobApplication.user_id == user_id)
    if status:
        query = query.filter(JobApplication.status == status)
    return query.order_by(JobApplication.created_at.desc(), JobApplication.id.desc()).all()


def update_content(
    db: Session,
    application_id: int,
    user_id: int,
    generated_email: str,
    mirror: Optional[RecordMirror] = None,
    dispatch: MirrorDispatch = run_inline,
) -> JobApplication:
    """
    Replace the generated email. Allowed while draft or sent.

    Raises:
        ApplicationNotFoundError: If missing or not owned
        ApplicationStateError: If the application is archived
    """
    application = get_application(db, application_id, user_id)

    if application.status == ARCHIVED:
        raise ApplicationStateError(
            "Archived applications cannot be edited",
            application_id=application_id,
            status=application.status,
        )

    application.generated_email = generated_email
    db.commit()
    db.refresh(application)

    logger.info(f"Application content updated: application_id={application_id}, user_id={user_id}")
    _schedule_change(db, application, {"GeneratedEmail": generated_email}, mirror, dispatch)
    return application


def mark_as_sent(
    db: Session,
    application_id: int,
    user_id: int,
    mirror: Optional[RecordMirror] = None,
    dispatch: MirrorDispatch = run_inline,
) -> JobApplication:
    """
    Move a draft to sent and stamp sent_at.

    Calling it on an application that is already sent changes nothing.

    Raises:
        ApplicationNotFoundError: If missing or not owned
        ApplicationStateError: If the application is archived
    """
    application = get_application(db, application_id, user_id)

    if application.status == SENT:
        logger.debug(f"Application already sent: application_id={application_id}")
        return application

    if application.status != DRAFT:
        raise ApplicationStateError(
            f"Cannot mark a {application.status} application as sent",
            application_id=application_id,
            status=application.status,
        )

    application.status = SENT
    application.sent_at = datetime.utcnow()
    db.commit()
    db.refresh(application)

    logger.info(f"Application marked as sent: application_id={application_id}, user_id={user_id}")
    _schedule_change(
        db,
        application,
        {"Status": SENT, "SentAt": application.sent_at.isoformat()},
        mirror,
        dispatch,
    )
    return application


def archive(
    db: Session,
    application_id: int,
    user_id: int,
    mirror: Optional[RecordMirror] = None,
    dispatch: MirrorDispatch = run_inline,
) -> JobApplication:
    """
    Archive a draft or sent application. Archiving twice changes nothing.

    Raises:
        ApplicationNotFoundError: If missing or not owned
    """
    application = get_application(db, application_id, user_id)

    if application.status == ARCHIVED:
        logger.debug(f"Application already archived: application_id={application_id}")
        return application

    application.status = ARCHIVED
    application.sent_at = None
    db.commit()
    db.refresh(application)

    logger.info(f"Application archived: application_id={application_id}, user_id={user_id}")
    _schedule_change(db, application, {"Status": ARCHIVED, "SentAt": None}, mirror, dispatch)
    return application
