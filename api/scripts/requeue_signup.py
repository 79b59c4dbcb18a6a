#!/usr/bin/env python3
"""
Move a signup stuck in "failed" back to "pending".

Demo provisioning failures during verification are terminal; support
runs this once the cause is fixed. The verification token is cleared,
so the user has to register again to get a fresh link.

Usage:
    python scripts/requeue_signup.py user@example.com
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Settings
from crud.crud_signups import requeue_failed
from database import build_engine, build_session_factory
from errors import PortalError
from utils.audit import log_audit_event


def requeue(db, email: str):
    signup = requeue_failed(db, email)
    log_audit_event(db, "signup_requeued", signup_id=signup.id, details={"email": email, "source": "script"})
    return signup


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Requeue a failed signup so the user can register again',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python requeue_signup.py user@example.com
        """
    )
    parser.add_argument('email', help='Email of the failed signup')
    args = parser.parse_args(argv)

    engine = build_engine(Settings())
    db = build_session_factory(engine)()
    try:
        signup = requeue(db, args.email)
    except PortalError as e:
        print(f"Cannot requeue {args.email}: {e.message}")
        return 1
    finally:
        db.close()
        engine.dispose()

    print(f"Signup {signup.id} ({signup.email}) is pending again")
    return 0


if __name__ == '__main__':
    sys.exit(main())
