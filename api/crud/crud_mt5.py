from sqlalchemy.orm import Session

from models.mt5 import Mt5User, Mt5Deal, Mt5Position, Mt5Daily

CLOSING_ENTRY = 1  # Deal that closes a position
VOLUME_DIVISOR = 10000


### 🚀 Trading platform mirror lookups (read-only)
def get_mt5_user(db: Session, login: str):
    return db.query(Mt5User).filter(Mt5User.login == login).first()

def list_closed_deals(db: Session, login: str):
    return (
        db.query(Mt5Deal)
        .filter(Mt5Deal.login == login, Mt5Deal.entry == CLOSING_ENTRY)
        .order_by(Mt5Deal.time.desc())
        .all()
    )

def list_positions(db: Session, login: str):
    return (
        db.query(Mt5Position)
        .filter(Mt5Position.login == login)
        .order_by(Mt5Position.timecreate.desc())
        .all()
    )

def list_daily_balances(db: Session, login: str):
    return (
        db.query(Mt5Daily)
        .filter(Mt5Daily.login == login)
        .order_by(Mt5Daily.datetime.asc())
        .all()
    )
