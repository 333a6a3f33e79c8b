"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


# ──────────────────────────── Feed ────────────────────────────────────────

class FeedVideo(BaseModel):
    video_id: str
    user_id: str
    username: Optional[str] = None
    caption: Optional[str]
    video_url: Optional[str]
    boost_value: float
    created_at: datetime


class FeedResponse(BaseModel):
    videos: list[FeedVideo]
    # Fewer videos than requested is normal: see WeightedFeedSampler
    requested: int
    candidates: int
    latency_ms: float


# ──────────────────────────── Promotion ───────────────────────────────────

class PromoteRequest(BaseModel):
    user_id: str
    coins: int = Field(..., ge=1)


class PromoteResponse(BaseModel):
    video_id: str
    previous_boost: float
    new_boost: float
    coins_spent: int
    remaining_coins: int


# ──────────────────────────── Conversations ───────────────────────────────

class ConversationRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    other_user_id: str = Field(..., min_length=1)


class ConversationIdResponse(BaseModel):
    conversation_id: str


class ConversationSummaryResponse(BaseModel):
    conversation_id: str
    other_user_id: str
    last_message_at: Optional[datetime]
    last_message_text: Optional[str]
    unread_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class SendMessageRequest(BaseModel):
    sender_id: str = Field(..., min_length=1)
    receiver_id: str = Field(..., min_length=1)
    content: str


class MessageResponse(BaseModel):
    message_id: str
    conversation_id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool
    read_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class MarkReadResponse(BaseModel):
    conversation_id: str
    marked_read: int


# ──────────────────────────── Search ──────────────────────────────────────

class SearchResult(FeedVideo):
    score: int
    matched_terms: list[str]


class SearchResponse(BaseModel):
    query: str
    expanded_terms: list[str]
    results: list[SearchResult]
