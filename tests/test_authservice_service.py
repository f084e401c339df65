import base64
import threading

import pytest

from components.authservice.config import AuthSettings
from components.authservice.contracts import LoginRequest, RefreshRequest, RegisterRequest
from components.authservice.crypto import HS512TokenCodec
from components.authservice.errors import (
    EmailTaken, InvalidCredentials, InvalidToken, UserAlreadyExists,
)
from components.authservice.models import BcryptPasswordHasher, InMemoryUserStore
from components.authservice.service import AuthService


def make_service(clock, secret, store=None):
    cfg = AuthSettings(_env_file=None, secret=secret, access_ttl_seconds=3600,
                       refresh_ttl_seconds=86400, bcrypt_rounds=4)
    svc = AuthService(
        user_store=store if store is not None else InMemoryUserStore(),
        hasher=BcryptPasswordHasher(rounds=cfg.bcrypt_rounds),
        codec=HS512TokenCodec(cfg.secret, clock=clock),
        cfg=cfg,
    )
    return svc


def register(svc, email="a@x.com", password="right", name="A"):
    return svc.register(RegisterRequest(email=email, password=password, name=name))


def test_register_returns_tokens_for_new_user(clock, secret):
    svc = make_service(clock, secret)
    pair = register(svc)
    assert pair.email == "a@x.com"
    assert pair.name == "A"
    assert pair.token_type == "Bearer"
    assert pair.expires_in == 3600
    access = svc.codec.verify(pair.access_token)
    refresh = svc.codec.verify(pair.refresh_token)
    assert access.sub == refresh.sub == "a@x.com"
    assert access.exp == clock.now + 3600
    assert refresh.exp == clock.now + 86400


def test_register_stores_hash_not_plaintext(clock, secret):
    svc = make_service(clock, secret)
    register(svc, password="s3cret")
    user = svc.user_store.find_by_email("a@x.com")
    assert user.password_hash != "s3cret"
    assert svc.hasher.matches("s3cret", user.password_hash)


def test_register_twice_raises_email_taken_and_keeps_first_user(clock, secret):
    svc = make_service(clock, secret)
    register(svc, name="First")
    first = svc.user_store.find_by_email("a@x.com")

    with pytest.raises(EmailTaken) as exc:
        register(svc, password="other", name="Second")

    assert exc.value.status_code == 409
    assert exc.value.payload.code == "EMAIL_TAKEN"
    assert svc.user_store.find_by_email("a@x.com") == first
    assert len(svc.user_store) == 1


def test_register_email_is_case_insensitive(clock, secret):
    svc = make_service(clock, secret)
    register(svc, email="A@X.com")
    with pytest.raises(EmailTaken):
        register(svc, email="a@x.COM ")


def test_register_race_on_save_maps_to_email_taken(clock, secret):
    class RacingStore(InMemoryUserStore):
        def find_by_email(self, email):
            return None

        def save(self, user):
            raise UserAlreadyExists(user.email)

    svc = make_service(clock, secret, store=RacingStore())
    with pytest.raises(EmailTaken):
        register(svc)


def test_store_failure_propagates_untyped(clock, secret):
    class BrokenStore(InMemoryUserStore):
        def find_by_email(self, email):
            raise ConnectionError("db down")

    svc = make_service(clock, secret, store=BrokenStore())
    with pytest.raises(ConnectionError):
        register(svc)


def test_login_after_register_succeeds(clock, secret):
    svc = make_service(clock, secret)
    register(svc, email="a@x.com", password="right", name="A")
    pair = svc.login(LoginRequest(email="a@x.com", password="right"))
    assert svc.codec.subject_of(pair.access_token) == "a@x.com"
    assert svc.codec.subject_of(pair.refresh_token) == "a@x.com"
    assert pair.name == "A"


def test_login_wrong_password_and_unknown_email_are_indistinguishable(clock, secret):
    svc = make_service(clock, secret)
    register(svc, password="right")

    with pytest.raises(InvalidCredentials) as wrong_pw:
        svc.login(LoginRequest(email="a@x.com", password="wrong"))
    with pytest.raises(InvalidCredentials) as unknown:
        svc.login(LoginRequest(email="nobody@x.com", password="right"))

    assert type(wrong_pw.value) is type(unknown.value)
    assert wrong_pw.value.payload == unknown.value.payload
    assert wrong_pw.value.status_code == unknown.value.status_code == 401


def test_login_runs_one_hash_check_for_unknown_email_and_wrong_password(clock, secret):
    class CountingHasher(BcryptPasswordHasher):
        def __init__(self, rounds):
            super().__init__(rounds)
            self.checks = 0

        def matches(self, plaintext, hashed):
            self.checks += 1
            return super().matches(plaintext, hashed)

    svc = make_service(clock, secret)
    svc.hasher = CountingHasher(rounds=4)
    register(svc, password="right")

    with pytest.raises(InvalidCredentials):
        svc.login(LoginRequest(email="a@x.com", password="wrong"))
    assert svc.hasher.checks == 1

    with pytest.raises(InvalidCredentials):
        svc.login(LoginRequest(email="nobody@x.com", password="right"))
    assert svc.hasher.checks == 2


def test_refresh_returns_new_access_and_same_refresh_token(clock, secret):
    svc = make_service(clock, secret)
    pair = register(svc)

    clock.advance(120)
    refreshed = svc.refresh(RefreshRequest(refresh_token=pair.refresh_token))

    assert refreshed.refresh_token == pair.refresh_token
    assert refreshed.access_token != pair.access_token
    old_exp = svc.codec.verify(pair.access_token).exp
    new_exp = svc.codec.verify(refreshed.access_token).exp
    assert new_exp >= old_exp
    assert refreshed.email == "a@x.com"
    assert refreshed.name == "A"


def test_refresh_does_not_rotate_on_repeated_use(clock, secret):
    svc = make_service(clock, secret)
    pair = register(svc)
    first = svc.refresh(RefreshRequest(refresh_token=pair.refresh_token))
    second = svc.refresh(RefreshRequest(refresh_token=first.refresh_token))
    assert second.refresh_token == pair.refresh_token


def test_refresh_with_foreign_token_is_invalid_token(clock, secret):
    svc = make_service(clock, secret)
    register(svc)
    foreign = HS512TokenCodec("Z" * 64, clock=clock).issue("a@x.com", 86400)

    with pytest.raises(InvalidToken) as exc:
        svc.refresh(RefreshRequest(refresh_token=foreign))
    assert exc.value.payload.details == {"reason": "invalid_signature"}


def test_refresh_with_expired_token_is_invalid_token(clock, secret):
    svc = make_service(clock, secret)
    pair = register(svc)
    clock.advance(86400)
    with pytest.raises(InvalidToken) as exc:
        svc.refresh(RefreshRequest(refresh_token=pair.refresh_token))
    assert exc.value.payload.details == {"reason": "expired"}


def test_refresh_with_garbage_is_invalid_token(clock, secret):
    svc = make_service(clock, secret)
    with pytest.raises(InvalidToken) as exc:
        svc.refresh(RefreshRequest(refresh_token="garbage"))
    assert exc.value.payload.details == {"reason": "malformed"}


def test_refresh_with_deeply_nested_header_is_invalid_token(clock, secret):
    svc = make_service(clock, secret)
    head = base64.urlsafe_b64encode(b"[" * 200_000).rstrip(b"=").decode("utf-8")
    with pytest.raises(InvalidToken) as exc:
        svc.refresh(RefreshRequest(refresh_token=f"{head}.e30.sig"))
    assert exc.value.payload.details == {"reason": "invalid_signature"}


def test_refresh_for_unknown_user_is_invalid_token(clock, secret):
    svc = make_service(clock, secret)
    token = svc.codec.issue("ghost@x.com", 86400)
    with pytest.raises(InvalidToken) as exc:
        svc.refresh(RefreshRequest(refresh_token=token))
    assert exc.value.payload.details == {"reason": "unknown_subject"}


def test_verify_access_returns_public_view(clock, secret):
    svc = make_service(clock, secret)
    pair = register(svc)
    view = svc.verify_access(pair.access_token)
    assert view.email == "a@x.com"
    assert view.name == "A"
    assert "password_hash" not in view.model_dump()


def test_concurrent_registrations_yield_single_user(clock, secret):
    svc = make_service(clock, secret)
    results = []

    def attempt():
        try:
            register(svc)
            results.append("ok")
        except EmailTaken:
            results.append("taken")

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("taken") == 7
    assert len(svc.user_store) == 1
