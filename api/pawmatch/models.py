import uuid
from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Index, Integer, String, UniqueConstraint, func
from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class DogProfile(Base):
    __tablename__ = "dog_profile"

    id = Column(String, primary_key=True, default=_uuid)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=True)
    age = Column(Integer, nullable=False)
    size = Column(String, nullable=False)
    energy_level = Column(String, nullable=False)
    breed = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SwipeDecisionRecord(Base):
    __tablename__ = "swipe_decision"

    id = Column(String, primary_key=True, default=_uuid)
    swiper_id = Column(String, nullable=False)
    swiped_id = Column(String, nullable=False)
    is_like = Column(Boolean, nullable=False)
    super_like = Column(Boolean, nullable=False, default=False)
    compatibility_score = Column(Float, nullable=False, default=0.0)
    view_duration_ms = Column(Integer, nullable=False, default=0)
    photos_viewed = Column(Integer, nullable=False, default=0)
    scroll_depth = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("swiper_id", "swiped_id", name="uq_swipe_pair"),
        Index("idx_swipe_decision_swiper_id", "swiper_id"),
    )


class DogMatch(Base):
    __tablename__ = "dog_match"

    id = Column(String, primary_key=True)
    user1_id = Column(String, nullable=False)
    user2_id = Column(String, nullable=False)
    profile1_id = Column(String, nullable=False)
    profile2_id = Column(String, nullable=False)
    compatibility_score = Column(Float, nullable=False)
    reasons = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="PENDING")
    tier = Column(String, nullable=False, default="NORMAL")
    initiator_profile_id = Column(String, nullable=False)
    location_distance = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_dog_match_profile1_id", "profile1_id"),
        Index("idx_dog_match_profile2_id", "profile2_id"),
    )


class MatchEvent(Base):
    __tablename__ = "match_event"

    id = Column(String, primary_key=True, default=_uuid)
    match_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)
    event_type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
