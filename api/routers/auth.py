import logging

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from dependencies import get_db, get_settings, get_platform, get_mailer, get_codec, get_current_login
from errors import Expired, PortalError
from schemas.auth import RegisterSchema, VerifySchema, LoginSchema, OtpVerifySchema, PasswordChangeSchema
from security import SessionCodec
from services import auth_service, signup_service
from utils.audit import log_audit_event, log_login
from utils.cookies import (
    clear_cookie,
    clear_otp_cookies,
    issue_session,
    read_otp_cookies,
    set_otp_cookies,
    SESSION_COOKIE,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _origin(request: Request, settings) -> str:
    return request.headers.get("origin") or settings.PUBLIC_BASE_URL


# new user signup: pending record + verification email
@router.post("/register")
def register(payload: RegisterSchema, request: Request, db: Session = Depends(get_db),
             settings=Depends(get_settings), mailer=Depends(get_mailer)):
    signup = signup_service.register(
        db, mailer,
        email=payload.email,
        password=payload.password,
        origin=_origin(request, settings),
        locale=payload.locale,
    )
    log_audit_event(db, "signup_registered", signup_id=signup.id, details={"email": signup.email}, request=request)
    return {"success": True, "message": "Verification email sent."}


# verification link: demo account + first session
@router.post("/verify")
def verify(payload: VerifySchema, request: Request, db: Session = Depends(get_db), settings=Depends(get_settings),
           platform=Depends(get_platform), mailer=Depends(get_mailer), codec: SessionCodec = Depends(get_codec)):
    result = signup_service.verify(
        db, platform, mailer,
        token=payload.token,
        password_encoded=payload.password_encoded,
        demo_initial_balance=settings.DEMO_INITIAL_BALANCE,
    )
    if result.already_verified:
        return {"success": True, "message": "Email already verified."}

    log_audit_event(db, "signup_verified", signup_id=result.signup.id, login=result.demo_login, request=request)

    response = JSONResponse(content={
        "success": True,
        "message": "Email verified. Demo account created.",
        "demo_login": result.demo_login,
        "real_login": None,
    })
    issue_session(response, request, codec, result.demo_login)
    return response


# password step: emails an OTP, no session yet
@router.post("/login")
def login(payload: LoginSchema, request: Request, db: Session = Depends(get_db),
          mailer=Depends(get_mailer), codec: SessionCodec = Depends(get_codec)):
    try:
        challenge = auth_service.start_login(db, mailer, payload.email, payload.password)
    except PortalError as e:
        if payload.email:
            log_audit_event(db, "login_attempt", details={
                "success": False, "method": "password", "email": payload.email, "reason": e.message,
            }, request=request)
        raise

    log_login(db, challenge.signup.id, True, "password", login=challenge.login, request=request)

    response = JSONResponse(content={
        "success": True,
        "valid": True,
        "requireOtp": True,
        "email": challenge.signup.email,
    })
    set_otp_cookies(
        response, request, codec,
        email=challenge.signup.email,
        login=challenge.login,
        code_hash=challenge.otp.code_hash,
        expires_at=challenge.otp.expires_at,
    )
    return response


# OTP step: the only way to a session for returning users
@router.post("/otp-verify")
def otp_verify(payload: OtpVerifySchema, request: Request, db: Session = Depends(get_db),
               codec: SessionCodec = Depends(get_codec)):
    challenge = read_otp_cookies(request, codec)
    try:
        login = auth_service.complete_login(challenge, payload.code)
    except Expired as e:
        log_login(db, None, False, "otp", login=challenge["otp_login"] if challenge else None,
                  reason="expired", request=request)
        response = JSONResponse(status_code=e.status_code, content={"success": False, "message": e.message})
        clear_otp_cookies(response)
        return response
    except PortalError as e:
        if challenge:
            log_login(db, None, False, "otp", login=challenge["otp_login"], reason=e.message, request=request)
        raise

    log_login(db, None, True, "otp", login=login, request=request)

    response = JSONResponse(content={"success": True})
    issue_session(response, request, codec, login)
    clear_otp_cookies(response)
    return response


# local password change for the signup behind the session
@router.post("/password")
def change_password(payload: PasswordChangeSchema, request: Request, db: Session = Depends(get_db),
                    login: str = Depends(get_current_login)):
    signup = auth_service.change_password(db, login, payload.current_password, payload.new_password)
    log_audit_event(db, "password_changed", signup_id=signup.id, login=login, request=request)
    return {"success": True, "message": "Password updated."}


@router.post("/logout")
def logout():
    response = JSONResponse(content={"success": True})
    clear_cookie(response, SESSION_COOKIE)
    clear_otp_cookies(response)
    return response
