from datetime import timedelta

import jwt

from src.bookings.tokens import CapabilityTokenService, TokenStatus, RETRIEVE_ARTIFACT

SECRET = "another-test-secret-that-is-long-enough-for-hs256"


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_service(clock=None):
    return CapabilityTokenService(secret=SECRET, algorithm="HS256", clock=clock or FakeClock())


def test_issued_token_verifies_for_its_subject_and_action():
    service = make_service()
    token = service.issue("booking-a", RETRIEVE_ARTIFACT, timedelta(hours=1))

    check = service.verify(token, "booking-a", RETRIEVE_ARTIFACT)

    assert check.status == TokenStatus.VALID
    assert check.is_valid
    assert check.claims["sub"] == "booking-a"


def test_token_is_scoped_to_subject():
    service = make_service()
    token = service.issue("booking-a", RETRIEVE_ARTIFACT, timedelta(hours=1))

    assert service.verify(token, "booking-b", RETRIEVE_ARTIFACT).status == TokenStatus.SUBJECT_MISMATCH


def test_token_is_scoped_to_action():
    service = make_service()
    token = service.issue("booking-a", RETRIEVE_ARTIFACT, timedelta(hours=1))

    assert service.verify(token, "booking-a", "validate").status == TokenStatus.SUBJECT_MISMATCH


def test_token_expires_one_millisecond_after_ttl():
    clock = FakeClock()
    service = make_service(clock)
    issued_at = clock.now
    token = service.issue("booking-a", RETRIEVE_ARTIFACT, timedelta(hours=1))

    clock.now = issued_at + 3600 + 0.001
    assert service.verify(token, "booking-a", RETRIEVE_ARTIFACT).status == TokenStatus.EXPIRED


def test_token_expiry_is_strict():
    clock = FakeClock()
    service = make_service(clock)
    issued_at = clock.now
    token = service.issue("booking-a", RETRIEVE_ARTIFACT, timedelta(seconds=60))

    clock.now = issued_at + 59.999
    assert service.verify(token, "booking-a", RETRIEVE_ARTIFACT).is_valid

    clock.now = issued_at + 60
    assert service.verify(token, "booking-a", RETRIEVE_ARTIFACT).status == TokenStatus.EXPIRED


def test_token_signed_with_other_secret_is_malformed():
    token = CapabilityTokenService(
        secret="a-completely-different-secret-for-signing",
        algorithm="HS256",
        clock=FakeClock()
    ).issue("booking-a", RETRIEVE_ARTIFACT, timedelta(hours=1))

    assert make_service().verify(token, "booking-a", RETRIEVE_ARTIFACT).status == TokenStatus.MALFORMED


def test_tampered_token_is_malformed():
    service = make_service()
    token = service.issue("booking-a", RETRIEVE_ARTIFACT, timedelta(hours=1))
    header, payload, signature = token.split(".")
    forged = jwt.encode({"sub": "booking-b", "act": RETRIEVE_ARTIFACT, "exp": 9e9}, "guess", algorithm="HS256")

    assert service.verify(f"{header}.{forged.split('.')[1]}.{signature}", "booking-b", RETRIEVE_ARTIFACT).status == TokenStatus.MALFORMED


def test_garbage_and_missing_tokens_are_malformed():
    service = make_service()

    assert service.verify("not-a-token", "booking-a", RETRIEVE_ARTIFACT).status == TokenStatus.MALFORMED
    assert service.verify("", "booking-a", RETRIEVE_ARTIFACT).status == TokenStatus.MALFORMED
    assert service.verify(None, "booking-a", RETRIEVE_ARTIFACT).status == TokenStatus.MALFORMED


def test_token_without_scope_claims_is_malformed():
    token = jwt.encode({"sub": "booking-a"}, SECRET, algorithm="HS256")

    assert make_service().verify(token, "booking-a", RETRIEVE_ARTIFACT).status == TokenStatus.MALFORMED
