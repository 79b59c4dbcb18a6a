import base64
import binascii
import hashlib
import hmac
import re
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from crud.crud_signups import get_signup_by_token
from errors import Expired, NotFound, OtpExpired, OtpMismatch, ValidationError

VERIFICATION_TOKEN_TTL = timedelta(hours=24)
OTP_TTL_SECONDS = 5 * 60        # 5 minutes
SESSION_MAX_AGE = 60 * 60 * 24  # 24 hours, fixed from issuance

# 🔑 Password hashing setup
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)

email_adapter = TypeAdapter(EmailStr)
# 8-12 chars, at least one digit, one lowercase, one uppercase, one allowed symbol
PASSWORD_PATTERN = re.compile(
    r"^(?=.*[0-9])(?=.*[a-z])(?=.*[A-Z])(?=.*[!@#$%^&*._-])[A-Za-z0-9!@#$%^&*._-]{8,12}$"
)
PASSWORD_POLICY_MESSAGE = "Password must be 8-12 characters with upper, lower, number, and one of !@#$%^&*._-"


### 🔐 Hash Password
def hash_password(password: str) -> str:
    return pwd_context.hash(password)

### 🔐 Verify Password
def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def is_valid_email(email) -> bool:
    if not isinstance(email, str):
        return False
    try:
        normalized = email_adapter.validate_python(email)
    except SchemaValidationError:
        return False
    # EmailStr also accepts "Name <addr>"; only a bare address is allowed here
    return normalized.lower() == email.lower()

def is_valid_password(password) -> bool:
    return isinstance(password, str) and PASSWORD_PATTERN.match(password) is not None


### 🔗 Password transport in the verification link
def encode_password_for_link(password: str) -> str:
    return base64.urlsafe_b64encode(password.encode("utf-8")).decode("ascii").rstrip("=")

def decode_password_from_link(encoded: str) -> str:
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        password = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        raise ValidationError("Invalid password data.")
    if not password:
        raise ValidationError("Invalid password data.")
    return password


### ✉️ Email verification tokens
def issue_verification_token(now: datetime | None = None):
    """
    Return (token, expires_at). 256 random bits; uniqueness comes from the
    identifier space, the store is never consulted.
    """
    now = now or datetime.utcnow()
    return secrets.token_urlsafe(32), now + VERIFICATION_TOKEN_TTL


def validate_verification_token(db: Session, token: str, now: datetime | None = None):
    """
    Resolve a verification token to its signup.

    Raises NotFound for an unknown token and Expired once the expiry has
    passed. A signup that is already verified is returned unchanged; the
    caller treats that as an idempotent success.
    """
    signup = get_signup_by_token(db, token)
    if signup is None:
        raise NotFound("Invalid verification token.")

    now = now or datetime.utcnow()
    if signup.token_expires_at is None or now >= signup.token_expires_at:
        raise Expired("Verification link has expired.")

    return signup


### 🔢 One-time login codes
@dataclass(frozen=True)
class OtpCode:
    code: str
    code_hash: str
    expires_at: int  # Epoch milliseconds


def current_millis() -> int:
    return int(time.time() * 1000)


def hash_otp(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def issue_otp(now_ms: int | None = None) -> OtpCode:
    now_ms = now_ms if now_ms is not None else current_millis()
    code = f"{secrets.randbelow(10 ** 6):06d}"
    return OtpCode(code=code, code_hash=hash_otp(code), expires_at=now_ms + OTP_TTL_SECONDS * 1000)


def validate_otp(submitted_code: str, stored_hash: str, expires_at, now_ms: int | None = None):
    """
    Check a submitted code against the challenge.

    Raises OtpExpired once past expiry (the caller must clear the OTP state)
    and OtpMismatch when the hashes differ. There is no attempt counter;
    the 5 minute window bounds guessing.
    """
    now_ms = now_ms if now_ms is not None else current_millis()
    try:
        expires_at = int(expires_at)
    except (TypeError, ValueError):
        raise OtpExpired()

    if now_ms >= expires_at:
        raise OtpExpired()

    if not hmac.compare_digest(hash_otp(submitted_code), stored_hash or ""):
        raise OtpMismatch()


### 🍪 Signed cookie values
class SessionCodec:
    """
    The single encoding for every cookie the portal issues.

    Values are wrapped in a signed JWT whose "kind" claim names the cookie,
    so a token minted for one cookie is rejected when presented as another.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def encode(self, kind: str, value: str, max_age: int) -> str:
        expire = datetime.utcnow() + timedelta(seconds=max_age)
        payload = {"sub": str(value), "kind": kind, "exp": expire}
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode(self, kind: str, token: str | None):
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if payload.get("kind") != kind:
            return None
        return payload.get("sub")
