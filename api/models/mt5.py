"""
Read-only mirrors of the trading platform's tables.

The platform owns these tables; the portal only queries them for display
and for withdrawal reconciliation. Column names follow the platform's
mixed-case naming.
"""
from sqlalchemy import Column, Integer, BigInteger, String, Float, DateTime
from database import Base


class Mt5User(Base):
    __tablename__ = "mt5_users"

    login = Column("Login", String(32), primary_key=True)
    name = Column("Name", String(128), nullable=True)
    email = Column("Email", String(255), nullable=True)
    phone = Column("Phone", String(64), nullable=True)
    registration = Column("Registration", DateTime, nullable=True)
    currency_digits = Column("CurrencyDigits", Integer, nullable=True)

    balance = Column("Balance", Float, default=0)
    credit = Column("Credit", Float, default=0)
    margin = Column("Margin", Float, default=0)
    margin_free = Column("MarginFree", Float, default=0)
    margin_level = Column("MarginLevel", Float, default=0)
    margin_leverage = Column("MarginLeverage", Float, default=0)
    profit = Column("Profit", Float, default=0)
    storage = Column("Storage", Float, default=0)
    floating = Column("Floating", Float, default=0)
    equity = Column("Equity", Float, default=0)


class Mt5Deal(Base):
    __tablename__ = "mt5_deals"

    deal = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    login = Column(String(32), index=True, nullable=False)
    time = Column(DateTime, nullable=True)
    symbol = Column(String(32), nullable=True)
    action = Column(Integer, nullable=True)       # 2 = balance operation
    entry = Column(Integer, nullable=True)        # 1 = position close
    profit = Column(Float, default=0)
    priceposition = Column(Float, nullable=True)
    pricesl = Column(Float, nullable=True)
    pricetp = Column(Float, nullable=True)
    marketbid = Column(Float, nullable=True)
    marketask = Column(Float, nullable=True)
    volume = Column(BigInteger().with_variant(Integer, "sqlite"), default=0)  # Platform units, 10000 per lot
    comment = Column(String(64), nullable=True)


class Mt5Position(Base):
    __tablename__ = "mt5_positions"

    position = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    login = Column(String(32), index=True, nullable=False)
    timecreate = Column(DateTime, nullable=True)
    symbol = Column(String(32), nullable=True)
    profit = Column(Float, default=0)
    storage = Column(Float, default=0)
    priceopen = Column(Float, nullable=True)
    pricesl = Column(Float, nullable=True)
    pricetp = Column(Float, nullable=True)
    pricecurrent = Column(Float, nullable=True)
    volume = Column(BigInteger().with_variant(Integer, "sqlite"), default=0)


class Mt5Daily(Base):
    __tablename__ = "mt5_daily"

    id = Column(Integer, primary_key=True, autoincrement=True)
    login = Column(String(32), index=True, nullable=False)
    datetime = Column("Datetime", BigInteger().with_variant(Integer, "sqlite"), nullable=False)  # Unix seconds
    balance = Column("Balance", Float, default=0)
