# database/models.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String, Text, UniqueConstraint, func

# Important: must match Base from db_setup.py
from .db_setup import Base


def _utcnow():
    return datetime.now(timezone.utc)


class StoreRow(Base):
    """Store registry: one row per store."""
    __tablename__ = "stores"

    store_id = Column(String(32), primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    address = Column(String(400), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<StoreRow(store_id={self.store_id}, name={self.name})>"


class ReviewRow(Base):
    """Review store. store_id / user_id are opaque keys owned by other concepts."""
    __tablename__ = "reviews"

    review_id = Column(String(32), primary_key=True)
    store_id = Column(String(32), nullable=False, index=True)
    user_id = Column(String(32), nullable=False, index=True)
    text = Column(Text, nullable=False, default="")
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<ReviewRow(review_id={self.review_id}, store_id={self.store_id}, rating={self.rating})>"


class RatingRow(Base):
    """Rating aggregator: running total and count per store."""
    __tablename__ = "ratings"

    store_id = Column(String(32), primary_key=True)
    rating_total = Column(Float, nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<RatingRow(store_id={self.store_id}, total={self.rating_total}, count={self.review_count})>"


class TagRow(Base):
    """Tag index: one row per (store, tag) pair."""
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("store_id", "tag", name="uq_store_tag"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(String(32), nullable=False, index=True)
    tag = Column(String(100), nullable=False, index=True)


class UserRow(Base):
    """Account registry."""
    __tablename__ = "users"

    user_id = Column(String(32), primary_key=True)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(200), nullable=False, unique=True)
    password_hash = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<UserRow(user_id={self.user_id}, username={self.username})>"
