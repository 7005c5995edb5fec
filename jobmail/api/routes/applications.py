"""
Job application endpoints.

Creating an application generates the email and consumes one credit.
Applications are then edited, marked as sent, or archived.
"""
import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from jobmail.core.auth_dependency import get_db, get_current_user_obj
from jobmail.core.credit_guard import require_credits
from jobmail.core.exceptions import JobMailError, to_http_exception
from jobmail.core.integrations import get_record_mirror
from jobmail.db.models.user import User
from jobmail.schemas.application import (
    ApplicationContentUpdate,
    ApplicationCreate,
    ApplicationCreatedResponse,
    ApplicationListResponse,
    ApplicationResponse,
)
from jobmail.services import application_service
from jobmail.services.credit_service import get_credit_balance
from jobmail.services.record_mirror import RecordMirror

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])


def _internal_error(db: Session, action: str) -> HTTPException:
    db.rollback()
    logger.error(f"Failed to {action}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}"
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApplicationCreatedResponse)
def create_application(
    payload: ApplicationCreate,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_credits()),
    db: Session = Depends(get_db),
    mirror: Optional[RecordMirror] = Depends(get_record_mirror),
):
    """
    Generate an application email and save it as a draft.

    Consumes one credit. Returns 403 when the balance is empty.
    """
    try:
        application = application_service.create_application(
            db,
            user.id,
            payload.to_details(),
            mirror=mirror,
            dispatch=background_tasks.add_task,
        )
    except JobMailError as e:
        raise to_http_exception(e)
    except Exception:
        raise _internal_error(db, "create job application")

    return ApplicationCreatedResponse(
        application=ApplicationResponse.model_validate(application),
        remaining_credits=get_credit_balance(db, user.id),
    )


@router.get("", response_model=ApplicationListResponse)
def list_applications(
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(draft|sent|archived)$"),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    """List the user's applications, newest first."""
    applications = application_service.list_applications(db, user.id, status=status_filter)
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(a) for a in applications],
        total=len(applications),
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: int,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    try:
        application = application_service.get_application(db, application_id, user.id)
    except JobMailError as e:
        raise to_http_exception(e)
    return ApplicationResponse.model_validate(application)


@router.put("/{application_id}", response_model=ApplicationResponse)
def update_application(
    application_id: int,
    payload: ApplicationContentUpdate,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    mirror: Optional[RecordMirror] = Depends(get_record_mirror),
):
    """Replace the generated email. Returns 409 for archived applications."""
    try:
        application = application_service.update_content(
            db,
            application_id,
            user.id,
            payload.generated_email,
            mirror=mirror,
            dispatch=background_tasks.add_task,
        )
    except JobMailError as e:
        raise to_http_exception(e)
    except Exception:
        raise _internal_error(db, "update job application")
    return ApplicationResponse.model_validate(application)


@router.post("/{application_id}/send", response_model=ApplicationResponse)
def mark_as_sent(
    application_id: int,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    mirror: Optional[RecordMirror] = Depends(get_record_mirror),
):
    """Mark a draft as sent. Repeating the call leaves sent_at unchanged."""
    try:
        application = application_service.mark_as_sent(
            db, application_id, user.id, mirror=mirror, dispatch=background_tasks.add_task
        )
    except JobMailError as e:
        raise to_http_exception(e)
    except Exception:
        raise _internal_error(db, "mark application as sent")
    return ApplicationResponse.model_validate(application)


@router.post("/{application_id}/archive", response_model=ApplicationResponse)
def archive_application(
    application_id: int,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    mirror: Optional[RecordMirror] = Depends(get_record_mirror),
):
    try:
        application = application_service.archive(
            db, application_id, user.id, mirror=mirror, dispatch=background_tasks.add_task
        )
    except JobMailError as e:
        raise to_http_exception(e)
    except Exception:
        raise _internal_error(db, "archive application")
    return ApplicationResponse.model_validate(application)
