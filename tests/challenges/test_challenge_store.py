from __future__ import annotations

import threading

from src.attendance_engine.attendance_engine.challenges.model import IdentityChallenge
from src.attendance_engine.attendance_engine.challenges.store import InMemoryChallengeStore
from src.attendance_engine.attendance_engine.core.enums import VerifyResult
from tests.fakes import T0, minutes


def _challenge(code="012345", key="sam@school.edu", session_id=None, ttl=10) -> IdentityChallenge:
    return IdentityChallenge(
        claimant_key=key,
        code=code,
        issued_at=T0,
        expires_at=T0 + minutes(ttl),
        session_id=session_id,
    )


def test_verify_consumes_on_success():
    store = InMemoryChallengeStore()
    store.put(_challenge())

    assert store.verify_and_consume("sam@school.edu", "012345", now=T0 + minutes(1)).result is VerifyResult.OK
    assert store.verify_and_consume("sam@school.edu", "012345", now=T0 + minutes(1)).result is VerifyResult.NOT_FOUND


def test_leading_zeros_are_significant():
    store = InMemoryChallengeStore()
    store.put(_challenge(code="001234"))

    assert store.verify_and_consume("sam@school.edu", "1234", now=T0).result is VerifyResult.MISMATCH
    assert store.verify_and_consume("sam@school.edu", "001234", now=T0).result is VerifyResult.OK


def test_expired_challenge_reports_expired_once():
    store = InMemoryChallengeStore()
    store.put(_challenge(ttl=2))

    assert store.verify_and_consume("sam@school.edu", "012345", now=T0 + minutes(2)).result is VerifyResult.EXPIRED
    assert store.verify_and_consume("sam@school.edu", "012345", now=T0 + minutes(2)).result is VerifyResult.NOT_FOUND


def test_new_issue_supersedes_previous_code():
    store = InMemoryChallengeStore()
    store.put(_challenge(code="111111"))
    store.put(_challenge(code="222222"))

    assert store.verify_and_consume("sam@school.edu", "111111", now=T0).result is VerifyResult.MISMATCH
    assert store.verify_and_consume("sam@school.edu", "222222", now=T0).result is VerifyResult.OK


def test_challenge_is_discarded_after_max_attempts():
    store = InMemoryChallengeStore(max_attempts=3)
    store.put(_challenge())

    outcomes = [store.verify_and_consume("sam@school.edu", "999999", now=T0) for _ in range(3)]
    assert [o.result for o in outcomes] == [VerifyResult.MISMATCH] * 3
    assert [o.discarded for o in outcomes] == [False, False, True]
    assert store.verify_and_consume("sam@school.edu", "012345", now=T0).result is VerifyResult.NOT_FOUND


def test_challenge_bound_to_other_session_does_not_verify():
    store = InMemoryChallengeStore()
    store.put(_challenge(session_id=5))

    assert store.verify_and_consume("sam@school.edu", "012345", now=T0, session_id=6).result is VerifyResult.MISMATCH
    assert store.verify_and_consume("sam@school.edu", "012345", now=T0, session_id=5).result is VerifyResult.OK


def test_purge_expired_drops_only_stale_entries():
    store = InMemoryChallengeStore()
    store.put(_challenge(key="a@school.edu", ttl=2))
    store.put(_challenge(key="b@school.edu", ttl=10))

    assert store.purge_expired(now=T0 + minutes(5)) == 1
    assert len(store) == 1
    assert store.get("b@school.edu") is not None
    assert store.delete("b@school.edu") is True
    assert store.delete("b@school.edu") is False


def test_concurrent_verification_redeems_exactly_once():
    store = InMemoryChallengeStore()
    store.put(_challenge())
    barrier = threading.Barrier(16)
    results = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        r = store.verify_and_consume("sam@school.edu", "012345", now=T0 + minutes(1))
        with lock:
            results.append(r.result)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(VerifyResult.OK) == 1
    assert results.count(VerifyResult.NOT_FOUND) == 15
