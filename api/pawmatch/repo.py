import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text

from pawmatch.database import SessionLocal
from pawmatch.domain import Match, MatchReason, MatchStatus, MatchTier, Profile, SwipeDecision
from pawmatch.services.events import log_match_event
from pawmatch.services.state_machine import transition_status

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _profile_from_row(row: dict[str, Any]) -> Profile:
    return Profile(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        age=int(row["age"]),
        size=str(row["size"]),
        energy_level=str(row["energy_level"]),
        breed=str(row["breed"]),
        latitude=row.get("latitude"),
        longitude=row.get("longitude"),
        name=row.get("name"),
    )


def _match_from_row(row: dict[str, Any]) -> Match:
    reasons_raw = row.get("reasons") or []
    if isinstance(reasons_raw, str):
        reasons_raw = json.loads(reasons_raw)
    return Match(
        id=str(row["id"]),
        user1_id=str(row["user1_id"]),
        user2_id=str(row["user2_id"]),
        profile1_id=str(row["profile1_id"]),
        profile2_id=str(row["profile2_id"]),
        compatibility_score=float(row["compatibility_score"]),
        reasons=tuple(MatchReason(r) for r in reasons_raw),
        tier=MatchTier(row["tier"]),
        initiator_profile_id=str(row["initiator_profile_id"]),
        status=MatchStatus(row["status"]),
        timestamp=_parse_ts(row["created_at"]),
        location_distance=row.get("location_distance"),
    )


def upsert_profile(profile: Profile) -> Profile:
    params = {
        "id": profile.id,
        "owner_id": profile.owner_id,
        "name": profile.name,
        "age": profile.age,
        "size": profile.size,
        "energy_level": profile.energy_level,
        "breed": profile.breed,
        "latitude": profile.latitude,
        "longitude": profile.longitude,
    }
    with SessionLocal() as db:
        exists = db.execute(text("SELECT 1 FROM dog_profile WHERE id=:id"), {"id": profile.id}).first()
        if exists:
            db.execute(
                text(
                    """
                    UPDATE dog_profile
                    SET owner_id=:owner_id, name=:name, age=:age, size=:size, energy_level=:energy_level,
                        breed=:breed, latitude=:latitude, longitude=:longitude
                    WHERE id=:id
                    """
                ),
                params,
            )
        else:
            db.execute(
                text(
                    """
                    INSERT INTO dog_profile (id, owner_id, name, age, size, energy_level, breed, latitude, longitude)
                    VALUES (:id, :owner_id, :name, :age, :size, :energy_level, :breed, :latitude, :longitude)
                    """
                ),
                params,
            )
        db.commit()
    return profile


def get_profile(profile_id: str) -> Profile | None:
    with SessionLocal() as db:
        row = db.execute(text("SELECT * FROM dog_profile WHERE id=:id"), {"id": profile_id}).mappings().first()
    return _profile_from_row(dict(row)) if row else None


def list_candidate_profiles(
    swiper_profile_id: str,
    swiper_owner_id: str,
    after_id: str | None,
    limit: int,
) -> list[Profile]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT p.*
                FROM dog_profile p
                WHERE p.owner_id <> :owner_id
                  AND p.id <> :swiper_id
                  AND (:after_id IS NULL OR p.id > :after_id)
                  AND NOT EXISTS (
                    SELECT 1 FROM swipe_decision s
                    WHERE s.swiper_id = :swiper_id AND s.swiped_id = p.id
                  )
                ORDER BY p.id
                LIMIT :limit
                """
            ),
            {"owner_id": swiper_owner_id, "swiper_id": swiper_profile_id, "after_id": after_id, "limit": limit},
        ).mappings().all()
    return [_profile_from_row(dict(r)) for r in rows]


def insert_swipe(decision: SwipeDecision) -> None:
    with SessionLocal() as db:
        db.execute(
            text("DELETE FROM swipe_decision WHERE swiper_id=:swiper_id AND swiped_id=:swiped_id"),
            {"swiper_id": decision.swiper_id, "swiped_id": decision.swiped_id},
        )
        db.execute(
            text(
                """
                INSERT INTO swipe_decision (
                  id, swiper_id, swiped_id, is_like, super_like, compatibility_score,
                  view_duration_ms, photos_viewed, scroll_depth, created_at
                )
                VALUES (
                  :id, :swiper_id, :swiped_id, :is_like, :super_like, :compatibility_score,
                  :view_duration_ms, :photos_viewed, :scroll_depth, :created_at
                )
                """
            ),
            {
                "id": decision.id,
                "swiper_id": decision.swiper_id,
                "swiped_id": decision.swiped_id,
                "is_like": decision.is_like,
                "super_like": decision.super_like,
                "compatibility_score": decision.compatibility_score,
                "view_duration_ms": decision.telemetry.view_duration_ms,
                "photos_viewed": decision.telemetry.photos_viewed,
                "scroll_depth": decision.telemetry.scroll_depth,
                "created_at": decision.timestamp.isoformat(),
            },
        )
        db.commit()


def delete_swipe(swiper_id: str, swiped_id: str) -> int:
    with SessionLocal() as db:
        result = db.execute(
            text("DELETE FROM swipe_decision WHERE swiper_id=:swiper_id AND swiped_id=:swiped_id"),
            {"swiper_id": swiper_id, "swiped_id": swiped_id},
        )
        db.commit()
    return int(result.rowcount or 0)


def insert_match(match: Match) -> None:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                INSERT INTO dog_match (
                  id, user1_id, user2_id, profile1_id, profile2_id, compatibility_score, reasons,
                  status, tier, initiator_profile_id, location_distance, created_at, expires_at
                )
                VALUES (
                  :id, :user1_id, :user2_id, :profile1_id, :profile2_id, :compatibility_score, :reasons,
                  :status, :tier, :initiator_profile_id, :location_distance, :created_at, :expires_at
                )
                """
            ),
            {
                "id": match.id,
                "user1_id": match.user1_id,
                "user2_id": match.user2_id,
                "profile1_id": match.profile1_id,
                "profile2_id": match.profile2_id,
                "compatibility_score": match.compatibility_score,
                "reasons": json.dumps([r.value for r in match.reasons]),
                "status": match.status.value,
                "tier": match.tier.value,
                "initiator_profile_id": match.initiator_profile_id,
                "location_distance": match.location_distance,
                "created_at": match.timestamp.isoformat(),
                "expires_at": match.expires_at.isoformat(),
            },
        )
        log_match_event(
            db,
            match_id=match.id,
            event_type="match_created",
            payload={"tier": match.tier.value, "score": match.compatibility_score},
            user_id=match.user1_id,
        )
        db.commit()


def get_match(match_id: str) -> Match | None:
    with SessionLocal() as db:
        row = db.execute(text("SELECT * FROM dog_match WHERE id=:id"), {"id": match_id}).mappings().first()
    return _match_from_row(dict(row)) if row else None


def list_matches_for_profile(profile_id: str, now: datetime | None = None) -> list[Match]:
    now = now or _now_utc()
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT * FROM dog_match
                WHERE profile1_id=:profile_id OR profile2_id=:profile_id
                ORDER BY created_at DESC
                """
            ),
            {"profile_id": profile_id},
        ).mappings().all()
    return [_as_viewed(_match_from_row(dict(r)), now) for r in rows]


def view_match(match_id: str, now: datetime | None = None) -> Match | None:
    match = get_match(match_id)
    return _as_viewed(match, now or _now_utc()) if match else None


def _as_viewed(match: Match, now: datetime) -> Match:
    status = transition_status(match, "view", now)
    return match if status is match.status else _with_status(match, status)


def _with_status(match: Match, status: MatchStatus) -> Match:
    return replace(match, status=status)


def update_match_status(match_id: str, action: str, now: datetime | None = None, user_id: str | None = None) -> Match | None:
    now = now or _now_utc()
    match = get_match(match_id)
    if match is None:
        return None
    new_status = transition_status(match, action, now)
    if new_status is match.status:
        return match
    with SessionLocal() as db:
        db.execute(
            text("UPDATE dog_match SET status=:status WHERE id=:id"),
            {"status": new_status.value, "id": match_id},
        )
        log_match_event(
            db,
            match_id=match_id,
            event_type=f"match_{new_status.value.lower()}",
            payload={"action": action, "from": match.status.value, "to": new_status.value},
            user_id=user_id,
        )
        db.commit()
    logger.info("[REPO] match=%s %s -> %s via %s", match_id, match.status.value, new_status.value, action)
    return _with_status(match, new_status)


def list_match_events(match_id: str) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text("SELECT event_type, user_id, payload FROM match_event WHERE match_id=:match_id ORDER BY created_at"),
            {"match_id": match_id},
        ).mappings().all()
    out: list[dict[str, Any]] = []
    for r in rows:
        payload = r["payload"]
        if isinstance(payload, str):
            payload = json.loads(payload)
        out.append({"event_type": r["event_type"], "user_id": r["user_id"], "payload": payload})
    return out
