"""Database helpers and CRUD operations for scanned tokens and signals."""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import config
from database.models import Base, ScannedToken, TokenSignal
from monitor.errors import PersistenceFailure
from utils.addressing import normalize_address

logger = logging.getLogger(__name__)

_TOKEN_COLUMNS = {column.name for column in ScannedToken.__table__.columns} - {"id", "address", "created_at"}
_SIGNAL_COLUMNS = {column.name for column in TokenSignal.__table__.columns} - {"id", "created_at"}


def _make_engine(database_url: str):
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection so every session sees the same in-memory database.
        return create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, future=True)


engine = _make_engine(config.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def configure(database_url: str) -> None:
    """Rebind the module engine, e.g. to an in-memory database for tests."""
    global engine
    engine.dispose()
    engine = _make_engine(database_url)
    SessionLocal.configure(bind=engine)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


def get_db() -> Session:
    return SessionLocal()


def _apply_fields(token: ScannedToken, fields: dict[str, Any]) -> None:
    for key, value in fields.items():
        if key in _TOKEN_COLUMNS:
            setattr(token, key, value)
    token.last_scanned_at = datetime.utcnow()


def _update_existing(db: Session, address: str, fields: dict[str, Any]) -> Optional[ScannedToken]:
    token = db.query(ScannedToken).filter(ScannedToken.address == address).first()
    if token is None:
        return None
    _apply_fields(token, fields)
    db.commit()
    db.refresh(token)
    return token


def upsert_token(address: str, fields: dict[str, Any]) -> tuple[ScannedToken, bool]:
    """Insert or update the token row keyed by address. Returns (token, is_new)."""
    address = normalize_address(address)
    db = get_db()
    try:
        token = _update_existing(db, address, fields)
        if token is not None:
            return token, False

        token = ScannedToken(address=address)
        _apply_fields(token, fields)
        db.add(token)
        try:
            db.commit()
        except IntegrityError:
            # Another writer inserted the same address first; last write wins.
            db.rollback()
            token = _update_existing(db, address, fields)
            if token is None:
                raise
            return token, False
        db.refresh(token)
        return token, True
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("DB_WRITE_FAIL table=scanned_tokens address=%s err=%s", address, exc)
        raise PersistenceFailure(f"failed to upsert token {address}: {exc}") from exc
    finally:
        db.close()


def insert_signal(fields: dict[str, Any]) -> TokenSignal:
    db = get_db()
    try:
        signal = TokenSignal(**{key: value for key, value in fields.items() if key in _SIGNAL_COLUMNS})
        signal.token_address = normalize_address(signal.token_address)
        db.add(signal)
        db.commit()
        db.refresh(signal)
        return signal
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("DB_WRITE_FAIL table=token_signals address=%s err=%s", fields.get("token_address"), exc)
        raise PersistenceFailure(f"failed to insert signal: {exc}") from exc
    finally:
        db.close()


def get_token(address: str) -> Optional[ScannedToken]:
    db = get_db()
    try:
        return db.query(ScannedToken).filter(ScannedToken.address == normalize_address(address)).first()
    finally:
        db.close()


def get_signals_for_token(address: str, limit: int = 5) -> list[TokenSignal]:
    db = get_db()
    try:
        return (
            db.query(TokenSignal)
            .filter(TokenSignal.token_address == normalize_address(address))
            .order_by(TokenSignal.created_at.desc(), TokenSignal.id.desc())
            .limit(limit)
            .all()
        )
    finally:
        db.close()


def get_top_tokens(limit: int = 20) -> list[ScannedToken]:
    db = get_db()
    try:
        return db.query(ScannedToken).order_by(ScannedToken.safety_score.desc()).limit(limit).all()
    finally:
        db.close()


def get_new_tokens(hours: float = 24, limit: int = 50) -> list[ScannedToken]:
    db = get_db()
    try:
        cutoff = datetime.utcnow() - timedelta(hours=float(hours))
        return (
            db.query(ScannedToken)
            .filter(ScannedToken.pair_created_at.is_not(None), ScannedToken.pair_created_at >= cutoff)
            .order_by(ScannedToken.created_at.desc())
            .limit(limit)
            .all()
        )
    finally:
        db.close()


def get_hot_tokens(min_score: int = 50, min_volume: float = 5000, limit: int = 20) -> list[ScannedToken]:
    db = get_db()
    try:
        return (
            db.query(ScannedToken)
            .filter(ScannedToken.safety_score >= min_score, ScannedToken.volume_24h >= min_volume)
            .order_by(ScannedToken.volume_24h.desc())
            .limit(limit)
            .all()
        )
    finally:
        db.close()


def get_hot_signals(limit: int = 10) -> list[TokenSignal]:
    db = get_db()
    try:
        return (
            db.query(TokenSignal)
            .filter(TokenSignal.is_active.is_(True))
            .order_by(TokenSignal.created_at.desc(), TokenSignal.id.desc())
            .limit(limit)
            .all()
        )
    finally:
        db.close()
