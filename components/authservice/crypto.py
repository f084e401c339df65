from __future__ import annotations
import base64, binascii, json, hmac, hashlib, logging, time
from typing import Any, Dict, Optional
from pydantic import ValidationError
from .config import MIN_SECRET_BYTES
from .contracts import ClockPort, TokenClaims, TokenCodecPort
from .errors import ExpiredToken, InvalidSignature, MalformedToken, TokenError

log = logging.getLogger("authservice.crypto")

_HEADER = {"alg": "HS512", "typ": "JWT"}

def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")

def _unb64url(s: str) -> bytes:
    pad = '=' * (-len(s) % 4)
    return base64.urlsafe_b64decode(s + pad)

def _decode_segment(segment: str) -> Dict[str, Any]:
    try:
        decoded = json.loads(_unb64url(segment).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError, RecursionError) as ex:
        raise MalformedToken("Undecodable token segment") from ex
    if not isinstance(decoded, dict):
        raise MalformedToken("Token segment is not a JSON object")
    return decoded


class SystemClock(ClockPort):
    def now_utc_ts(self) -> int:
        return int(time.time())


class HS512TokenCodec(TokenCodecPort):
    """
    Compact JWS (header.payload.signature) signed with HMAC-SHA-512.

    Claims are {sub, iat, exp} in whole seconds. Access and refresh tokens are
    encoded identically; callers pick the TTL. Verification checks structure,
    then signature, then expiry, and reports each failure as its own
    TokenError subclass.
    """
    def __init__(self, secret: str, *, clock: Optional[ClockPort] = None):
        if not secret:
            raise ValueError("HS512TokenCodec requires non-empty secret")
        key = secret.encode("utf-8")
        if len(key) < MIN_SECRET_BYTES:
            raise ValueError(f"HS512 secret must be at least {MIN_SECRET_BYTES} bytes")
        self._key = key
        self._clock = clock or SystemClock()

    def issue(self, subject: str, ttl_seconds: int) -> str:
        if not subject:
            raise ValueError("Token subject must be non-empty")
        if ttl_seconds < 0:
            raise ValueError("Token TTL must not be negative")
        now = self._clock.now_utc_ts()
        claims = TokenClaims(sub=subject, iat=now, exp=now + int(ttl_seconds))
        header_b64 = _b64url(json.dumps(_HEADER, separators=(",",":")).encode("utf-8"))
        payload_b64 = _b64url(json.dumps(claims.model_dump(), separators=(",",":")).encode("utf-8"))
        signing_input = f"{header_b64}.{payload_b64}"
        return f"{signing_input}.{self._sign(signing_input)}"

    def verify(self, token: str) -> TokenClaims:
        parts = token.split(".") if isinstance(token, str) else []
        if len(parts) != 3 or not all(parts):
            raise MalformedToken("Invalid token format")
        header_b64, payload_b64, sig_b64 = parts

        # compare the encoded form so non-canonical base64 never verifies
        expected = self._sign(f"{header_b64}.{payload_b64}")
        if not hmac.compare_digest(expected.encode("ascii"), sig_b64.encode("utf-8")):
            raise InvalidSignature("Signature mismatch")

        # nothing is decoded until the signature checks out
        header = _decode_segment(header_b64)
        if header.get("alg") != _HEADER["alg"]:
            raise MalformedToken(f"Unsupported alg: {header.get('alg')!r}")

        try:
            claims = TokenClaims.model_validate(_decode_segment(payload_b64), strict=True)
        except ValidationError as ex:
            raise MalformedToken("Missing or invalid claims") from ex

        if self._clock.now_utc_ts() >= claims.exp:
            raise ExpiredToken("Token expired")
        return claims

    def subject_of(self, token: str) -> str:
        return self.verify(token).sub

    def is_valid(self, token: str) -> bool:
        try:
            self.verify(token)
        except TokenError as ex:
            log.debug("token.rejected reason=%s", ex.reason)
            return False
        return True

    def _sign(self, signing_input: str) -> str:
        sig = hmac.new(self._key, signing_input.encode("utf-8"), hashlib.sha512).digest()
        return _b64url(sig)
