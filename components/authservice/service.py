from __future__ import annotations
import logging, uuid
from typing import Optional
from .contracts import (
    PasswordHasherPort, TokenCodecPort, UserStorePort,
    LoginRequest, RefreshRequest, RegisterRequest, TokenPair, User, UserView,
)
from .errors import (
    EmailTaken, InvalidCredentials, InvalidToken, TokenError, UserAlreadyExists,
)
from .config import AuthSettings

log = logging.getLogger("authservice.service")

class AuthService:
    """
    Stateless register / login / refresh workflow.

    Every failure leaves as an AuthServiceException subclass carrying an
    ErrorPayload. User store errors other than a duplicate email propagate
    unchanged.
    """
    def __init__(
        self,
        *,
        user_store: UserStorePort,
        hasher: PasswordHasherPort,
        codec: TokenCodecPort,
        cfg: Optional[AuthSettings] = None,
    ):
        self.user_store = user_store
        self.hasher = hasher
        self.codec = codec
        self.cfg = cfg or AuthSettings()
        # checked for unknown emails so every failed login costs one bcrypt run
        self._dummy_hash = self.hasher.hash(uuid.uuid4().hex)

    # --------- Core operations ----------
    def register(self, req: RegisterRequest) -> TokenPair:
        if self.user_store.find_by_email(req.email) is not None:
            log.info("register.rejected reason=email_taken")
            raise EmailTaken()

        user = User(
            id=uuid.uuid4().hex,
            email=req.email,
            password_hash=self.hasher.hash(req.password),
            name=req.name,
        )
        try:
            user = self.user_store.save(user)
        except UserAlreadyExists:
            # lost a race with a concurrent registration
            log.info("register.rejected reason=email_taken_on_save")
            raise EmailTaken() from None

        log.info("register.ok user_id=%s", user.id)
        return self._issue_pair(user)

    def login(self, req: LoginRequest) -> TokenPair:
        user = self.user_store.find_by_email(req.email)
        password_hash = user.password_hash if user is not None else self._dummy_hash
        matched = self.hasher.matches(req.password, password_hash)
        # same error for unknown email and wrong password
        if user is None or not matched:
            log.info("login.rejected")
            raise InvalidCredentials()
        log.info("login.ok user_id=%s", user.id)
        return self._issue_pair(user)

    def refresh(self, req: RefreshRequest) -> TokenPair:
        user = self._user_for_token(req.refresh_token)
        access_token = self.codec.issue(user.email, self.cfg.access_ttl_seconds)
        log.info("refresh.ok user_id=%s", user.id)
        # no rotation: the presented refresh token is echoed back
        return TokenPair(
            access_token=access_token,
            refresh_token=req.refresh_token,
            email=user.email,
            name=user.name,
            expires_in=self.cfg.access_ttl_seconds,
        )

    def verify_access(self, token: str) -> UserView:
        return self._user_for_token(token).view()

    # --------- Helpers ----------
    def _user_for_token(self, token: str) -> User:
        try:
            email = self.codec.subject_of(token)
        except TokenError as ex:
            log.info("token.rejected reason=%s", ex.reason)
            raise InvalidToken.because(ex.reason) from None

        user = self.user_store.find_by_email(email)
        if user is None:
            log.info("token.rejected reason=unknown_subject")
            raise InvalidToken.because("unknown_subject")
        return user

    def _issue_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.codec.issue(user.email, self.cfg.access_ttl_seconds),
            refresh_token=self.codec.issue(user.email, self.cfg.refresh_ttl_seconds),
            email=user.email,
            name=user.name,
            expires_in=self.cfg.access_ttl_seconds,
        )

