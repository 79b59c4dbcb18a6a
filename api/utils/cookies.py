"""
Cookie issuing for the session and the OTP challenge.

Every value goes through SessionCodec; handlers never write raw cookie
values themselves.
"""
from fastapi import Request
from fastapi.responses import Response

from security import SessionCodec, OTP_TTL_SECONDS, SESSION_MAX_AGE

SESSION_COOKIE = "session"
OTP_EMAIL_COOKIE = "otp_email"
OTP_LOGIN_COOKIE = "otp_login"
OTP_HASH_COOKIE = "otp_hash"
OTP_EXPIRES_COOKIE = "otp_expires"
OTP_COOKIES = (OTP_EMAIL_COOKIE, OTP_LOGIN_COOKIE, OTP_HASH_COOKIE, OTP_EXPIRES_COOKIE)


def is_secure_request(request: Request) -> bool:
    """True if the client reached us over TLS, possibly via a plain-HTTP proxy."""
    forwarded = request.headers.get("x-forwarded-proto", "")
    if forwarded.split(",")[0].strip().lower() == "https":
        return True
    return request.url.scheme == "https"


def _set(response: Response, request: Request, name: str, value: str, max_age: int):
    response.set_cookie(
        key=name,
        value=value,
        httponly=True,
        secure=is_secure_request(request),
        samesite="lax",
        max_age=max_age,
        path="/",
    )


def clear_cookie(response: Response, name: str):
    response.delete_cookie(name, path="/")


def issue_session(response: Response, request: Request, codec: SessionCodec, login: str):
    token = codec.encode(SESSION_COOKIE, login, SESSION_MAX_AGE)
    _set(response, request, SESSION_COOKIE, token, SESSION_MAX_AGE)


def read_session(request: Request, codec: SessionCodec):
    return codec.decode(SESSION_COOKIE, request.cookies.get(SESSION_COOKIE))


def set_otp_cookies(response: Response, request: Request, codec: SessionCodec,
                    email: str, login: str, code_hash: str, expires_at: int):
    values = {
        OTP_EMAIL_COOKIE: email,
        OTP_LOGIN_COOKIE: login,
        OTP_HASH_COOKIE: code_hash,
        OTP_EXPIRES_COOKIE: str(expires_at),
    }
    for name, value in values.items():
        _set(response, request, name, codec.encode(name, value, OTP_TTL_SECONDS), OTP_TTL_SECONDS)


def read_otp_cookies(request: Request, codec: SessionCodec):
    """Return the decoded challenge as a dict, or None if any part is missing or invalid."""
    values = {name: codec.decode(name, request.cookies.get(name)) for name in OTP_COOKIES}
    if not all(values.values()):
        return None
    return values


def clear_otp_cookies(response: Response):
    for name in OTP_COOKIES:
        clear_cookie(response, name)
