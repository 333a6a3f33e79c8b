"""
SQLAlchemy ORM models.

Tables:
  profiles           — user profiles + coin balance
  videos             — video metadata + promotion boost
  promotion_history  — audit trail of coins spent on boosts
  conversations      — one row per unordered pair of users
  messages           — direct messages within a conversation
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clipfeed.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255))
    coin_balance: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    videos = relationship("Video", back_populates="author", lazy="select")


class Video(Base):
    __tablename__ = "videos"

    video_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.user_id"), nullable=False
    )
    caption: Mapped[Optional[str]] = mapped_column(Text)
    video_url: Mapped[Optional[str]] = mapped_column(String(500))
    # 1.0 until promoted; only ever raised, capped at settings.max_boost
    boost_value: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    coins_spent_on_promotion: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_promoted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    author = relationship("Profile", back_populates="videos", lazy="joined")

    __table_args__ = (
        Index("idx_videos_user", "user_id"),
        Index("idx_videos_boost", "boost_value"),
    )


class PromotionHistory(Base):
    __tablename__ = "promotion_history"

    promotion_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.user_id"), nullable=False
    )
    video_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("videos.video_id"), nullable=False
    )
    coins_spent: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_boost: Mapped[float] = mapped_column(Float, nullable=False)
    new_boost: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("idx_promotion_video", "video_id"),)


class Conversation(Base):
    __tablename__ = "conversations"

    conversation_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    # user_one_id < user_two_id always (see ConversationKey)
    user_one_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_two_id: Mapped[str] = mapped_column(String(36), nullable=False)
    last_message_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    last_message_text: Mapped[Optional[str]] = mapped_column(String(100))
    user_one_unread_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    user_two_unread_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        # The only mutual exclusion for get-or-create races
        UniqueConstraint("user_one_id", "user_two_id", name="uq_conversation_pair"),
        Index("idx_conversations_user_two", "user_two_id"),
        Index("idx_conversations_last_message", "last_message_at"),
    )


class Message(Base):
    __tablename__ = "messages"

    message_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    conversation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversations.conversation_id"), nullable=False
    )
    sender_id: Mapped[str] = mapped_column(String(36), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        Index("idx_messages_conversation", "conversation_id", "created_at"),
        Index("idx_messages_receiver", "receiver_id"),
    )
