import logging
from datetime import datetime
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import Conflict, NotFound
from models.signup import UserSignup, SignupStatus

logger = logging.getLogger(__name__)


### 🚀 Lookups
def get_signup(db: Session, signup_id: int):
    return db.query(UserSignup).filter(UserSignup.id == signup_id).first()

def get_signup_by_email(db: Session, email: str):
    return db.query(UserSignup).filter(UserSignup.email == email).first()

def get_signup_by_login(db: Session, login: str):
    return db.query(UserSignup).filter(
        or_(UserSignup.real_login == login, UserSignup.demo_login == login)
    ).first()

def get_signup_by_token(db: Session, token: str):
    return db.query(UserSignup).filter(UserSignup.verification_token == token).first()


def _reset_pending(signup: UserSignup, password_hash: str, token: str, expires_at: datetime):
    signup.password_hash = password_hash
    signup.verification_token = token
    signup.token_expires_at = expires_at
    signup.status = SignupStatus.pending.value
    signup.email_verified_at = None
    signup.demo_login = None
    signup.real_login = None
    signup.account_password_synced = False


### 🚀 Insert or restart a pending signup
def upsert_pending(db: Session, email: str, password_hash: str, token: str, expires_at: datetime) -> UserSignup:
    """
    Write a pending signup for this email, overwriting any existing record.

    Registering again before verification restarts the flow: the old token
    stops matching and any linked logins are dropped. The caller is
    responsible for refusing finalized records.
    """
    signup = get_signup_by_email(db, email)
    if signup is None:
        signup = UserSignup(email=email)
        _reset_pending(signup, password_hash, token, expires_at)
        db.add(signup)
        try:
            db.commit()
        except IntegrityError:
            # Concurrent insert for the same email; last writer wins
            db.rollback()
            signup = get_signup_by_email(db, email)
            _reset_pending(signup, password_hash, token, expires_at)
            db.commit()
    else:
        _reset_pending(signup, password_hash, token, expires_at)
        db.commit()

    db.refresh(signup)
    return signup


### 🚀 Verification outcomes
def mark_verified_and_provisioned(db: Session, signup: UserSignup, demo_login: str) -> UserSignup:
    signup.email_verified_at = datetime.utcnow()
    signup.status = SignupStatus.accounts_created.value
    signup.demo_login = str(demo_login)
    signup.real_login = None
    signup.account_password_synced = True
    db.commit()
    db.refresh(signup)
    return signup

def mark_failed(db: Session, signup: UserSignup) -> UserSignup:
    signup.email_verified_at = datetime.utcnow()
    signup.status = SignupStatus.failed.value
    db.commit()
    db.refresh(signup)
    logger.warning(f"Signup {signup.id} ({signup.email}) marked failed")
    return signup


### 🚀 Link a live account
def attach_real_login(db: Session, signup_id: int, real_login: str) -> UserSignup:
    """
    Link a live login to the signup. Only one caller can ever win: the
    update is conditional on real_login still being empty.
    """
    updated = db.query(UserSignup).filter(
        UserSignup.id == signup_id,
        UserSignup.real_login.is_(None),
    ).update(
        {
            UserSignup.real_login: str(real_login),
            UserSignup.status: SignupStatus.accounts_created.value,
            UserSignup.account_password_synced: True,
        },
        synchronize_session=False,
    )
    db.commit()

    if updated == 0:
        raise Conflict("Live account already exists.")

    signup = get_signup(db, signup_id)
    db.refresh(signup)
    return signup


### 🚀 Password changes
def update_password_hash(db: Session, signup: UserSignup, new_hash: str) -> UserSignup:
    signup.password_hash = new_hash
    signup.account_password_synced = False  # Trading account password now differs
    db.commit()
    db.refresh(signup)
    return signup


### 🚀 Manual requeue of a failed signup
def requeue_failed(db: Session, email: str) -> UserSignup:
    """
    Move a failed signup back to pending so the user can register again.

    The stale verification token is dropped; a fresh registration issues a
    new link carrying the password needed to provision the account.
    """
    signup = get_signup_by_email(db, email)
    if signup is None:
        raise NotFound("Account not found.")
    if signup.status != SignupStatus.failed.value:
        raise Conflict(f"Signup is {signup.status}, only failed signups can be requeued.")

    signup.status = SignupStatus.pending.value
    signup.email_verified_at = None
    signup.verification_token = None
    signup.token_expires_at = None
    signup.demo_login = None
    signup.real_login = None
    db.commit()
    db.refresh(signup)
    logger.info(f"Requeued failed signup {signup.id} ({email})")
    return signup
