from __future__ import annotations

import pytest

from src.attendance_engine.attendance_engine.challenges.store import InMemoryChallengeStore
from src.attendance_engine.attendance_engine.core.enums import VerifyResult
from src.attendance_engine.attendance_engine.core.exceptions import (
    AuthorizationError,
    InvalidIdentity,
    NotFoundError,
    SessionNotActive,
    SessionNotFound,
)
from tests.fakes import T0, InMemoryDurableChallenges, RecordingNotifier, build_test_container, drain, minutes


def _open(container, **kwargs):
    return container.session_service.open_session(
        owner_id=1, class_id=kwargs.get("class_id", 7), subject_id=3, duration=minutes(5), now=T0
    )


def test_issue_dispatches_code_to_claimant():
    notifier = RecordingNotifier()
    c = build_test_container(notifier=notifier)
    challenge = c.challenge_service.issue(" Sam@School.edu ", now=T0)
    drain(c)

    assert challenge.claimant_key == "sam@school.edu"
    assert len(challenge.code) == 6 and challenge.code.isdigit()
    assert challenge.expires_at == T0 + minutes(10)
    sent = notifier.last_for("sam@school.edu")
    assert sent.kind == "otp"
    assert challenge.code in sent.body


def test_malformed_identity_is_rejected():
    c = build_test_container()
    with pytest.raises(InvalidIdentity):
        c.challenge_service.issue("not-an-email", now=T0)


def test_domain_allowlist_is_enforced():
    c = build_test_container(options={"ALLOWED_EMAIL_DOMAINS": ("school.edu",)})
    c.challenge_service.issue("sam@school.edu", now=T0)
    with pytest.raises(InvalidIdentity):
        c.challenge_service.issue("sam@gmail.com", now=T0)


def test_request_for_session_binds_challenge_to_session():
    c = build_test_container()
    session = _open(c)

    challenge = c.challenge_service.request_for_session("sam@school.edu", session.code.lower(), now=T0 + minutes(1))
    assert challenge.session_id == session.session_id


def test_request_for_session_checks_code_and_roster():
    c = build_test_container()
    session = _open(c)

    with pytest.raises(SessionNotFound):
        c.challenge_service.request_for_session("sam@school.edu", "NOPE0000", now=T0)
    with pytest.raises(NotFoundError):
        c.challenge_service.request_for_session("ghost@school.edu", session.code, now=T0)
    with pytest.raises(NotFoundError):
        c.challenge_service.request_for_session("teacher@school.edu", session.code, now=T0)
    with pytest.raises(AuthorizationError):
        c.challenge_service.request_for_session("other@school.edu", session.code, now=T0)
    with pytest.raises(SessionNotActive):
        c.challenge_service.request_for_session("sam@school.edu", session.code, now=T0 + minutes(5))


def test_durable_fallback_is_used_only_when_primary_misses():
    durable = InMemoryDurableChallenges()
    store = InMemoryChallengeStore()
    c = build_test_container(durable=durable, challenge_store=store)
    challenge = c.challenge_service.issue("sam@school.edu", now=T0)

    # Simulate a restart: the volatile copy is gone.
    store.delete("sam@school.edu")

    assert c.challenge_service.verify("sam@school.edu", challenge.code, now=T0 + minutes(1)).result is VerifyResult.OK
    assert c.challenge_service.verify("sam@school.edu", challenge.code, now=T0 + minutes(1)).result is VerifyResult.NOT_FOUND


def test_primary_success_invalidates_durable_copy():
    durable = InMemoryDurableChallenges()
    c = build_test_container(durable=durable)
    challenge = c.challenge_service.issue("sam@school.edu", now=T0)

    assert c.challenge_service.verify("sam@school.edu", challenge.code, now=T0).ok
    # No replay through the fallback.
    assert c.challenge_service.verify("sam@school.edu", challenge.code, now=T0).result is VerifyResult.NOT_FOUND


def test_durable_outage_degrades_to_memory_only():
    durable = InMemoryDurableChallenges()
    durable.fail = True
    c = build_test_container(durable=durable)
    challenge = c.challenge_service.issue("sam@school.edu", now=T0)

    assert c.challenge_service.verify("sam@school.edu", challenge.code, now=T0).ok
    assert c.challenge_service.verify("sam@school.edu", "000000", now=T0).result is VerifyResult.NOT_FOUND


def test_purge_expired_clears_volatile_store():
    c = build_test_container()
    c.challenge_service.issue("sam@school.edu", now=T0)
    assert c.challenge_service.purge_expired(now=T0 + minutes(11)) == 1


def test_attempt_limit_also_closes_the_durable_copy():
    durable = InMemoryDurableChallenges()
    c = build_test_container(durable=durable)
    challenge = c.challenge_service.issue("sam@school.edu", now=T0)
    wrong = "000000" if challenge.code != "000000" else "111111"

    results = [c.challenge_service.verify("sam@school.edu", wrong, now=T0).result for _ in range(12)]

    assert results[:5] == [VerifyResult.MISMATCH] * 5
    assert set(results[5:]) == {VerifyResult.NOT_FOUND}
    assert c.challenge_service.verify("sam@school.edu", challenge.code, now=T0).result is VerifyResult.NOT_FOUND


def test_durable_copy_enforces_attempt_limit_after_restart():
    durable = InMemoryDurableChallenges(max_attempts=3)
    store = InMemoryChallengeStore()
    c = build_test_container(durable=durable, challenge_store=store)
    challenge = c.challenge_service.issue("sam@school.edu", now=T0)
    wrong = "000000" if challenge.code != "000000" else "111111"

    # The volatile copy is lost; only the durable record remains.
    store.delete("sam@school.edu")
    for _ in range(3):
        assert c.challenge_service.verify("sam@school.edu", wrong, now=T0).result is VerifyResult.MISMATCH

    assert c.challenge_service.verify("sam@school.edu", challenge.code, now=T0).result is VerifyResult.NOT_FOUND
