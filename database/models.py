"""SQLAlchemy models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ScannedToken(Base):
    __tablename__ = "scanned_tokens"

    id = Column(Integer, primary_key=True)
    address = Column(String, unique=True, nullable=False, index=True)
    chain = Column(String, nullable=False, default="solana")
    symbol = Column(String, nullable=False, default="N/A")
    name = Column(String, nullable=False, default="Unknown")
    dex_id = Column(String, nullable=True)
    pair_address = Column(String, nullable=True)
    price_usd = Column(String, nullable=True)
    price_native = Column(String, nullable=True)
    liquidity = Column(Float, default=0.0, nullable=False)
    market_cap = Column(Float, default=0.0, nullable=False)
    volume_24h = Column(Float, default=0.0, nullable=False, index=True)
    price_change_1h = Column(Float, default=0.0, nullable=False)
    price_change_24h = Column(Float, default=0.0, nullable=False)
    buys_24h = Column(Integer, default=0, nullable=False)
    sells_24h = Column(Integer, default=0, nullable=False)
    social_links = Column(JSON, nullable=True)
    pair_created_at = Column(DateTime, nullable=True)
    safety_score = Column(Integer, default=0, nullable=False, index=True)
    risk_level = Column(String, default="critical", nullable=False)
    is_honeypot = Column(Boolean, default=False, nullable=False)
    is_liquidity_locked = Column(Boolean, default=False, nullable=False)
    mint_authority_disabled = Column(Boolean, default=False, nullable=False)
    top_holders_percentage = Column(Float, default=0.0, nullable=False)
    ai_signal = Column(String, nullable=True)
    ai_analysis = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_scanned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}


class TokenSignal(Base):
    __tablename__ = "token_signals"

    id = Column(Integer, primary_key=True)
    token_address = Column(String, nullable=False, index=True)
    signal_type = Column(String, nullable=False)
    confidence = Column(Integer, nullable=False)
    entry_price = Column(String, nullable=True)
    target_price = Column(String, nullable=True)
    stop_loss = Column(String, nullable=True)
    reasoning = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def to_dict(self) -> dict:
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}
