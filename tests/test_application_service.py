"""
Unit tests for the job application lifecycle.
Tests credit consumption, state transitions, ownership, and mirroring.
"""
import pytest

from jobmail.core.exceptions import (
    ApplicationNotFoundError,
    ApplicationStateError,
    InsufficientCreditsError,
)
from jobmail.db.models.job_application import JobApplication, DRAFT, SENT, ARCHIVED
from jobmail.services import application_service
from jobmail.services.credit_service import get_credit_balance


DETAILS = {
    "company_name": "Acme Corp",
    "job_title": "Backend Engineer",
    "job_description": "the team builds payment systems.",
    "additional_details": None,
    "resume_url": "https://example.com/resume.pdf",
}


def _create(db, user, mirror=None):
    return application_service.create_application(db, user.id, dict(DETAILS), mirror=mirror)


class TestCreateApplication:
    def test_creates_draft_and_consumes_one_credit(self, db, make_user):
        user = make_user(credits=2)

        application = _create(db, user)

        assert application.id is not None
        assert application.status == DRAFT
        assert application.sent_at is None
        assert application.company_name == "Acme Corp"
        assert "Backend Engineer position at Acme Corp" in application.generated_email
        assert get_credit_balance(db, user.id) == 1

    def test_zero_credits_is_denied_without_side_effects(self, db, make_user):
        user = make_user(credits=0)

        with pytest.raises(InsufficientCreditsError) as exc_info:
            _create(db, user)

        assert exc_info.value.context["credits"] == 0
        assert get_credit_balance(db, user.id) == 0
        assert db.query(JobApplication).count() == 0

    def test_balance_runs_down_to_zero(self, db, make_user):
        user = make_user(credits=2)

        _create(db, user)
        _create(db, user)
        with pytest.raises(InsufficientCreditsError):
            _create(db, user)

        assert get_credit_balance(db, user.id) == 0
        assert db.query(JobApplication).filter(JobApplication.user_id == user.id).count() == 2

    def test_failed_insert_releases_credit(self, db, make_user, monkeypatch):
        user = make_user(credits=1)
        original_commit = db.commit

        def failing_commit():
            raise RuntimeError("disk full")

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(RuntimeError):
            _create(db, user)
        monkeypatch.setattr(db, "commit", original_commit)

        assert get_credit_balance(db, user.id) == 1
        assert db.query(JobApplication).count() == 0

    def test_mirror_record_id_is_stored(self, db, make_user, mirror):
        user = make_user()

        application = _create(db, user, mirror=mirror)
        db.refresh(application)

        assert application.mirror_record_id == "rec0001"
        fields = mirror.records["rec0001"]
        assert fields["CompanyName"] == "Acme Corp"
        assert fields["Status"] == DRAFT
        assert fields["UserID"] == str(user.id)

    def test_mirror_failure_still_creates_draft(self, db, make_user, failing_mirror):
        user = make_user(credits=2)

        application = _create(db, user, mirror=failing_mirror)
        db.refresh(application)

        assert failing_mirror.attempts == 1
        assert application.status == DRAFT
        assert application.mirror_record_id is None
        assert get_credit_balance(db, user.id) == 1

    def test_dispatch_receives_mirror_call(self, db, make_user, mirror):
        user = make_user()
        scheduled = []

        application_service.create_application(
            db, user.id, dict(DETAILS), mirror=mirror,
            dispatch=lambda func, *args: scheduled.append((func, args)),
        )

        assert len(scheduled) == 1
        assert mirror.calls == []


class TestLifecycle:
    def test_mark_as_sent_sets_sent_at(self, db, test_user, mirror):
        application = _create(db, test_user, mirror=mirror)

        sent = application_service.mark_as_sent(db, application.id, test_user.id, mirror=mirror)

        assert sent.status == SENT
        assert sent.sent_at is not None
        assert mirror.records["rec0001"]["Status"] == SENT
        assert mirror.records["rec0001"]["SentAt"] == sent.sent_at.isoformat()

    def test_mark_as_sent_twice_keeps_first_timestamp(self, db, test_user, mirror):
        application = _create(db, test_user, mirror=mirror)
        first = application_service.mark_as_sent(db, application.id, test_user.id, mirror=mirror)
        sent_at = first.sent_at
        calls = len(mirror.calls)

        again = application_service.mark_as_sent(db, application.id, test_user.id, mirror=mirror)

        assert again.status == SENT
        assert again.sent_at == sent_at
        assert len(mirror.calls) == calls

    def test_archive_from_draft(self, db, test_user):
        application = _create(db, test_user)

        archived = application_service.archive(db, application.id, test_user.id)

        assert archived.status == ARCHIVED
        assert archived.sent_at is None

    def test_archive_from_sent_clears_sent_at(self, db, test_user, mirror):
        application = _create(db, test_user, mirror=mirror)
        application_service.mark_as_sent(db, application.id, test_user.id, mirror=mirror)

        archived = application_service.archive(db, application.id, test_user.id, mirror=mirror)

        assert archived.status == ARCHIVED
        assert archived.sent_at is None
        assert mirror.records["rec0001"]["Status"] == ARCHIVED
        assert mirror.records["rec0001"]["SentAt"] is None

    def test_archive_twice_is_noop(self, db, test_user, mirror):
        application = _create(db, test_user, mirror=mirror)
        application_service.archive(db, application.id, test_user.id, mirror=mirror)
        calls = len(mirror.calls)

        again = application_service.archive(db, application.id, test_user.id, mirror=mirror)

        assert again.status == ARCHIVED
        assert len(mirror.calls) == calls

    def test_archived_cannot_be_sent(self, db, test_user):
        application = _create(db, test_user)
        application_service.archive(db, application.id, test_user.id)

        with pytest.raises(ApplicationStateError):
            application_service.mark_as_sent(db, application.id, test_user.id)

    def test_update_content_on_draft_and_sent(self, db, test_user, mirror):
        application = _create(db, test_user, mirror=mirror)

        updated = application_service.update_content(db, application.id, test_user.id, "Draft v2", mirror=mirror)
        assert updated.generated_email == "Draft v2"

        application_service.mark_as_sent(db, application.id, test_user.id)
        updated = application_service.update_content(db, application.id, test_user.id, "Sent v3", mirror=mirror)
        assert updated.generated_email == "Sent v3"
        assert updated.status == SENT
        assert mirror.records["rec0001"]["GeneratedEmail"] == "Sent v3"

    def test_update_content_on_archived_is_rejected(self, db, test_user):
        application = _create(db, test_user)
        original = application.generated_email
        application_service.archive(db, application.id, test_user.id)

        with pytest.raises(ApplicationStateError):
            application_service.update_content(db, application.id, test_user.id, "too late")

        db.refresh(application)
        assert application.generated_email == original

    def test_update_does_not_consume_credits(self, db, make_user):
        user = make_user(credits=1)
        application = _create(db, user)

        application_service.update_content(db, application.id, user.id, "edited")
        application_service.mark_as_sent(db, application.id, user.id)
        application_service.archive(db, application.id, user.id)

        assert get_credit_balance(db, user.id) == 0

    def test_change_after_failed_first_sync_creates_mirror_record(self, db, test_user, failing_mirror, mirror):
        application = _create(db, test_user, mirror=failing_mirror)
        assert application.mirror_record_id is None

        application_service.mark_as_sent(db, application.id, test_user.id, mirror=mirror)
        db.refresh(application)

        assert application.mirror_record_id == "rec0001"
        assert mirror.calls[0][0] == "upsert"
        assert mirror.records["rec0001"]["Status"] == SENT

    def test_change_scheduled_before_first_sync_updates_same_record(self, db, test_user, mirror):
        scheduled = []

        def defer(func, *args):
            scheduled.append((func, args))

        application = application_service.create_application(
            db, test_user.id, dict(DETAILS), mirror=mirror, dispatch=defer
        )
        application_service.mark_as_sent(db, application.id, test_user.id, mirror=mirror, dispatch=defer)

        for func, args in scheduled:
            func(*args)
        db.refresh(application)

        assert [call[0] for call in mirror.calls] == ["upsert", "update"]
        assert list(mirror.records) == ["rec0001"]
        assert mirror.records["rec0001"]["Status"] == SENT
        assert application.mirror_record_id == "rec0001"

    def test_mirror_update_failure_keeps_local_state(self, db, test_user, mirror, failing_mirror):
        application = _create(db, test_user, mirror=mirror)

        sent = application_service.mark_as_sent(db, application.id, test_user.id, mirror=failing_mirror)

        assert sent.status == SENT
        assert failing_mirror.attempts == 1


class TestOwnership:
    def test_other_users_application_is_not_found(self, db, make_user):
        owner = make_user(email="owner@example.com")
        other = make_user(email="other@example.com")
        application = _create(db, owner)

        with pytest.raises(ApplicationNotFoundError):
            application_service.get_application(db, application.id, other.id)
        with pytest.raises(ApplicationNotFoundError):
            application_service.mark_as_sent(db, application.id, other.id)
        with pytest.raises(ApplicationNotFoundError):
            application_service.archive(db, application.id, other.id)
        with pytest.raises(ApplicationNotFoundError):
            application_service.update_content(db, application.id, other.id, "hijack")

        db.refresh(application)
        assert application.status == DRAFT

    def test_missing_application_is_not_found(self, db, test_user):
        with pytest.raises(ApplicationNotFoundError):
            application_service.get_application(db, 12345, test_user.id)

    def test_list_is_scoped_and_newest_first(self, db, make_user):
        owner = make_user(email="owner@example.com", credits=5)
        other = make_user(email="other@example.com", credits=5)
        first = _create(db, owner)
        second = _create(db, owner)
        _create(db, other)

        applications = application_service.list_applications(db, owner.id)

        assert [a.id for a in applications] == [second.id, first.id]

    def test_list_filters_by_status(self, db, make_user):
        user = make_user(credits=3)
        draft = _create(db, user)
        sent = _create(db, user)
        application_service.mark_as_sent(db, sent.id, user.id)

        drafts = application_service.list_applications(db, user.id, status=DRAFT)
        sent_list = application_service.list_applications(db, user.id, status=SENT)

        assert [a.id for a in drafts] == [draft.id]
        assert [a.id for a in sent_list] == [sent.id]
