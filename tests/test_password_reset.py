from datetime import timedelta

import pytest
from fastapi import BackgroundTasks

from app.core.errors import (
    AuthenticationError, ExpiredError, NotFoundError, ServerError, ValidationError,
)
from app.core.security import now_utc
from app.models.auth_models import User
from app.models.password_reset import PasswordResetToken
from app.services import auth_service
from app.services import password_reset as reset_service


def _advance_clock(monkeypatch, minutes):
    later = now_utc() + timedelta(minutes=minutes)
    monkeypatch.setattr(reset_service, "now_utc", lambda: later)


def _latest_otp(outbox, email):
    return [otp for to, otp, _ in outbox if to == email][-1]


def test_request_stores_hashed_otp_and_sends_it(db, make_user, outbox):
    uid = make_user(email="e@x.com")["user"]["id"]
    reset_service.request_otp(db, "e@x.com")

    assert len(outbox) == 1
    to, otp, minutes = outbox[0]
    assert to == "e@x.com"
    assert len(otp) == 6 and otp.isdigit()
    assert minutes == 30

    rec = db.query(PasswordResetToken).one()
    assert rec.user_id == uid
    assert rec.token != otp
    assert rec.verification_token is None
    remaining = rec.expires_at.replace(tzinfo=None) - now_utc().replace(tzinfo=None)
    assert timedelta(minutes=29) < remaining <= timedelta(minutes=30)


def test_request_for_unknown_email_is_silent(db, outbox):
    reset_service.request_otp(db, "ghost@x.com")
    assert outbox == []
    assert db.query(User).count() == 0
    assert db.query(PasswordResetToken).count() == 0


def test_request_requires_email(db):
    with pytest.raises(ValidationError):
        reset_service.request_otp(db, "  ")


def test_request_survives_delivery_failure(db, make_user, monkeypatch):
    make_user(email="e@x.com")

    def broken_send(to_email, otp, minutes):
        raise ConnectionError("smtp down")

    monkeypatch.setattr(reset_service, "send_otp_email", broken_send)
    reset_service.request_otp(db, "e@x.com")
    assert db.query(PasswordResetToken).count() == 1


def test_second_request_overwrites_single_row(db, make_user, outbox):
    make_user(email="e@x.com")
    reset_service.request_otp(db, "e@x.com")
    reset_service.request_otp(db, "e@x.com")
    second = _latest_otp(outbox, "e@x.com")

    assert len(outbox) == 2
    assert db.query(PasswordResetToken).count() == 1
    assert reset_service.verify_otp(db, "e@x.com", second)


def test_second_request_invalidates_first_otp(db, make_user, outbox, monkeypatch):
    make_user(email="e@x.com")
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(reset_service, "generate_otp", lambda: next(codes))

    reset_service.request_otp(db, "e@x.com")
    reset_service.request_otp(db, "e@x.com")

    with pytest.raises(ValidationError) as exc:
        reset_service.verify_otp(db, "e@x.com", "111111")
    assert exc.value.message == "Invalid OTP"
    assert reset_service.verify_otp(db, "e@x.com", "222222")


def test_new_request_revokes_outstanding_verification_token(db, make_user, outbox):
    make_user(email="e@x.com")
    reset_service.request_otp(db, "e@x.com")
    token = reset_service.verify_otp(db, "e@x.com", _latest_otp(outbox, "e@x.com"))

    reset_service.request_otp(db, "e@x.com")
    with pytest.raises(ValidationError):
        reset_service.reset_password(db, "e@x.com", "new-pw", token)


def test_verify_returns_token_and_stores_it(db, make_user, outbox):
    make_user(email="e@x.com")
    reset_service.request_otp(db, "e@x.com")
    token = reset_service.verify_otp(db, "e@x.com", _latest_otp(outbox, "e@x.com"))

    assert len(token) == 64
    rec = db.query(PasswordResetToken).one()
    assert rec.verification_token == token


def test_verify_wrong_otp(db, make_user, outbox, monkeypatch):
    make_user(email="e@x.com")
    monkeypatch.setattr(reset_service, "generate_otp", lambda: "123456")
    reset_service.request_otp(db, "e@x.com")
    with pytest.raises(ValidationError):
        reset_service.verify_otp(db, "e@x.com", "654321")
    assert db.query(PasswordResetToken).one().verification_token is None


def test_verify_errors(db, make_user):
    with pytest.raises(ValidationError):
        reset_service.verify_otp(db, "e@x.com", None)
    with pytest.raises(NotFoundError) as exc:
        reset_service.verify_otp(db, "ghost@x.com", "123456")
    assert exc.value.message == "User not found"

    make_user(email="e@x.com")
    with pytest.raises(NotFoundError) as exc:
        reset_service.verify_otp(db, "e@x.com", "123456")
    assert exc.value.message == "No OTP requested for this user"


def test_verify_expired_otp_fails_even_when_correct(db, make_user, outbox, monkeypatch):
    make_user(email="e@x.com")
    reset_service.request_otp(db, "e@x.com")
    otp = _latest_otp(outbox, "e@x.com")

    _advance_clock(monkeypatch, 31)
    with pytest.raises(ExpiredError):
        reset_service.verify_otp(db, "e@x.com", otp)


def test_full_reset_round_trip(db, make_user, outbox):
    make_user(email="e@x.com", password="old-pw")
    reset_service.request_otp(db, "e@x.com")
    token = reset_service.verify_otp(db, "e@x.com", _latest_otp(outbox, "e@x.com"))

    reset_service.reset_password(db, "e@x.com", "new-pw", token)

    assert db.query(PasswordResetToken).count() == 0
    assert auth_service.authenticate_user(db, "e@x.com", "new-pw")["token"]
    with pytest.raises(AuthenticationError):
        auth_service.authenticate_user(db, "e@x.com", "old-pw")


def test_verification_token_is_single_use(db, make_user, outbox):
    make_user(email="e@x.com")
    reset_service.request_otp(db, "e@x.com")
    token = reset_service.verify_otp(db, "e@x.com", _latest_otp(outbox, "e@x.com"))
    reset_service.reset_password(db, "e@x.com", "new-pw", token)

    with pytest.raises(ValidationError) as exc:
        reset_service.reset_password(db, "e@x.com", "another-pw", token)
    assert exc.value.message == "Invalid verification token"
    auth_service.authenticate_user(db, "e@x.com", "new-pw")


def test_reset_with_unverified_row_fails(db, make_user, outbox):
    make_user(email="e@x.com")
    reset_service.request_otp(db, "e@x.com")
    with pytest.raises(ValidationError):
        reset_service.reset_password(db, "e@x.com", "new-pw", "f" * 64)


def test_reset_errors(db, make_user):
    with pytest.raises(ValidationError):
        reset_service.reset_password(db, "e@x.com", "", "tok")
    with pytest.raises(ValidationError):
        reset_service.reset_password(db, "e@x.com", "pw", None)
    with pytest.raises(NotFoundError):
        reset_service.reset_password(db, "ghost@x.com", "pw", "tok")


def test_reset_after_expiry_fails(db, make_user, outbox, monkeypatch):
    make_user(email="e@x.com", password="old-pw")
    reset_service.request_otp(db, "e@x.com")
    token = reset_service.verify_otp(db, "e@x.com", _latest_otp(outbox, "e@x.com"))

    _advance_clock(monkeypatch, 45)
    with pytest.raises(ExpiredError):
        reset_service.reset_password(db, "e@x.com", "new-pw", token)
    assert db.query(PasswordResetToken).count() == 1
    auth_service.authenticate_user(db, "e@x.com", "old-pw")


def test_reset_commit_failure_leaves_state_untouched(db, make_user, outbox):
    make_user(email="e@x.com", password="old-pw")
    reset_service.request_otp(db, "e@x.com")
    token = reset_service.verify_otp(db, "e@x.com", _latest_otp(outbox, "e@x.com"))

    from sqlalchemy.exc import OperationalError

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    with pytest.MonkeyPatch.context() as m:
        m.setattr(db, "commit", failing_commit)
        with pytest.raises(ServerError):
            reset_service.reset_password(db, "e@x.com", "new-pw", token)

    assert db.query(PasswordResetToken).count() == 1
    auth_service.authenticate_user(db, "e@x.com", "old-pw")


def test_deleting_user_removes_reset_row(db, make_user, outbox):
    uid = make_user(email="e@x.com")["user"]["id"]
    reset_service.request_otp(db, "e@x.com")
    db.delete(db.get(User, uid))
    db.commit()
    assert db.query(PasswordResetToken).count() == 0


def test_concurrent_first_requests_leave_one_row(db, session_factory, make_user, outbox):
    make_user(email="e@x.com")
    real_commit = db.commit
    rivals = []

    def commit_after_rival():
        # another request lands between our lookup and our commit
        if not rivals:
            rivals.append(True)
            with session_factory() as rival:
                reset_service.request_otp(rival, "e@x.com")
        real_commit()

    with pytest.MonkeyPatch.context() as m:
        m.setattr(db, "commit", commit_after_rival)
        reset_service.request_otp(db, "e@x.com")

    assert rivals
    assert len(outbox) == 2
    assert db.query(PasswordResetToken).count() == 1
    # last writer wins
    assert reset_service.verify_otp(db, "e@x.com", outbox[-1][1])


def test_request_defers_delivery_to_background_tasks(db, make_user, outbox):
    make_user(email="e@x.com")
    tasks = BackgroundTasks()

    reset_service.request_otp(db, "e@x.com", tasks)
    assert outbox == []
    assert db.query(PasswordResetToken).count() == 1
    assert len(tasks.tasks) == 1

    task = tasks.tasks[0]
    task.func(*task.args, **task.kwargs)
    assert [to for to, _, _ in outbox] == ["e@x.com"]


def test_background_delivery_failure_is_logged(db, make_user, monkeypatch, caplog):
    make_user(email="e@x.com")

    def broken_send(to_email, otp, minutes):
        raise ConnectionError("smtp down")

    monkeypatch.setattr(reset_service, "send_otp_email", broken_send)
    tasks = BackgroundTasks()
    reset_service.request_otp(db, "e@x.com", tasks)

    task = tasks.tasks[0]
    task.func(*task.args, **task.kwargs)
    assert "Could not deliver reset OTP" in caplog.text


def test_unknown_email_costs_one_hash(db, make_user, outbox, monkeypatch):
    calls = []
    monkeypatch.setattr(reset_service, "dummy_verify", lambda: calls.append("dummy"))
    tasks = BackgroundTasks()

    reset_service.request_otp(db, "ghost@x.com", tasks)
    assert calls == ["dummy"]
    assert tasks.tasks == []
    assert outbox == []
