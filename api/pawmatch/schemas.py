from datetime import datetime
from pydantic import BaseModel, Field


class ProfileOut(BaseModel):
    id: str
    owner_id: str
    name: str | None = None
    age: int
    size: str
    energy_level: str
    breed: str
    latitude: float | None = None
    longitude: float | None = None


class ProfileIn(BaseModel):
    id: str
    name: str | None = None
    age: int = Field(ge=0)
    size: str
    energy_level: str
    breed: str
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class FilterStateIn(BaseModel):
    max_distance: float = Field(default=50.0, ge=0)
    min_age: int = Field(default=0, ge=0)
    max_age: int = Field(default=20, ge=0)
    energy_levels: list[str] = Field(default_factory=lambda: ["ANY"])
    breeds: list[str] = Field(default_factory=lambda: ["ANY"])
    sizes: list[str] = Field(default_factory=lambda: ["ANY"])


class ScrollIn(BaseModel):
    depth: int = Field(ge=0)


class LocationIn(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class MatchOut(BaseModel):
    id: str
    user1_id: str
    user2_id: str
    profile1_id: str
    profile2_id: str
    compatibility_score: float
    reasons: list[str]
    status: str
    tier: str
    initiator_profile_id: str
    created_at: datetime
    expires_at: datetime
    location_distance: float | None = None
    distance_label: str
    is_active: bool = False
    other_profile_id: str | None = None
    other_user_id: str | None = None


class MatchDetailOut(BaseModel):
    profile: ProfileOut
    match: MatchOut
    is_super: bool
    headline: str
    description: str
    welcome_message: str
    warnings: list[str] = Field(default_factory=list)


class EngineStateOut(BaseModel):
    kind: str
    message: str | None = None
    error_kind: str | None = None
    match: MatchDetailOut | None = None


class SwipeSessionResponse(BaseModel):
    state: EngineStateOut
    current_candidate: ProfileOut | None = None
    queue_size: int
    can_undo: bool
    active_filter_count: int
    refreshed: bool | None = None


class MatchListResponse(BaseModel):
    matches: list[MatchOut]
