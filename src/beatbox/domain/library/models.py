"""
Music library domain models.

Contains the record types persisted by the track store: tracks, playlists,
smart playlist criteria and play history entries.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Optional, Union

TrackId = str

# Value carried by a smart playlist rule, typed by the rule's field
RuleValue = Union[str, int, float, bool, None]

# Track fields a smart playlist rule may target, with their declared type
RULE_FIELD_TYPES: dict[str, str] = {
    "title": "text",
    "artist": "text",
    "album": "text",
    "genre": "text",
    "file_format": "text",
    "year": "number",
    "play_count": "number",
    "duration": "number",
    "is_favorite": "boolean",
}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass through a datetime)."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a timestamp as ISO-8601 for storage."""
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class Track:
    """Represents a music track with metadata.

    `play_count` and `last_played` are maintained by play history logging;
    everything else comes from import or user edits.
    """

    id: TrackId
    title: str = ""
    artist: str = ""
    album: str = ""
    genre: Optional[str] = None
    year: Optional[int] = None
    track_number: Optional[int] = None
    duration: float = 0.0  # in seconds
    file_format: str = ""
    file_size: Optional[int] = None
    file_path: str = ""
    album_art_url: Optional[str] = None
    is_favorite: bool = False
    play_count: int = 0
    last_played: Optional[datetime] = None
    created_date: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ValueError(f"Track duration must be >= 0, got {self.duration}")
        if self.play_count < 0:
            raise ValueError(f"Track play_count must be >= 0, got {self.play_count}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Track":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        for key in ("last_played", "created_date"):
            if key in values:
                values[key] = parse_timestamp(values[key])
        if values.get("created_date") is None:
            values.pop("created_date", None)
        if "is_favorite" in values:
            values["is_favorite"] = bool(values["is_favorite"])
        if "duration" in values:
            values["duration"] = float(values["duration"] or 0.0)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["last_played"] = format_timestamp(self.last_played)
        data["created_date"] = format_timestamp(self.created_date)
        return data


@dataclass(frozen=True)
class Rule:
    """A single smart playlist condition: `<field> <operator> <value>`."""

    field: str
    operator: str
    value: RuleValue = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rule":
        """Build a rule, coercing the value into the field's declared type.

        Values that cannot be coerced are kept as given; they then simply
        fail comparisons at evaluation time.
        """
        rule_field = data.get("field", "")
        return cls(
            field=rule_field,
            operator=data.get("operator", ""),
            value=coerce_rule_value(rule_field, data.get("value")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "operator": self.operator, "value": self.value}


def coerce_rule_value(rule_field: str, value: RuleValue) -> RuleValue:
    """Coerce a raw rule value (often a form string) into the field's type."""
    field_type = RULE_FIELD_TYPES.get(rule_field)

    if field_type == "number" and isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() else number

    if field_type == "boolean" and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False

    return value


@dataclass(frozen=True)
class RuleSet:
    """Smart playlist criteria: rules combined with AND (match_all) or OR."""

    match_all: bool = True
    rules: tuple[Rule, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleSet":
        return cls(
            match_all=bool(data.get("match_all", True)),
            rules=tuple(
                rule if isinstance(rule, Rule) else Rule.from_dict(rule)
                for rule in data.get("rules") or ()
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_all": self.match_all,
            "rules": [rule.to_dict() for rule in self.rules],
        }


@dataclass(frozen=True)
class Playlist:
    """A manual or smart playlist.

    For smart playlists `track_ids` is a cached view of the criteria's
    matches, refreshed by the smart playlist maintenance pass.
    """

    id: str
    name: str
    description: Optional[str] = None
    track_ids: tuple[TrackId, ...] = ()
    is_smart: bool = False
    smart_criteria: Optional[RuleSet] = None
    created_date: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        # Drop duplicate ids, keeping insertion order
        object.__setattr__(self, "track_ids", tuple(dict.fromkeys(self.track_ids)))
        if isinstance(self.smart_criteria, dict):
            object.__setattr__(
                self, "smart_criteria", RuleSet.from_dict(self.smart_criteria)
            )
        if self.is_smart and self.smart_criteria is None:
            raise ValueError(f"Smart playlist {self.name!r} requires smart_criteria")
        if not self.is_smart and self.smart_criteria is not None:
            raise ValueError(f"Manual playlist {self.name!r} cannot have smart_criteria")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Playlist":
        criteria = data.get("smart_criteria")
        if isinstance(criteria, dict):
            criteria = RuleSet.from_dict(criteria)
        values = {
            "id": data["id"],
            "name": data.get("name", ""),
            "description": data.get("description"),
            "track_ids": tuple(data.get("track_ids") or ()),
            "is_smart": bool(data.get("is_smart", False)),
            "smart_criteria": criteria,
        }
        created = parse_timestamp(data.get("created_date"))
        if created is not None:
            values["created_date"] = created
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "track_ids": list(self.track_ids),
            "is_smart": self.is_smart,
            "smart_criteria": self.smart_criteria.to_dict()
            if self.smart_criteria
            else None,
            "created_date": format_timestamp(self.created_date),
        }


@dataclass(frozen=True)
class PlayHistoryEntry:
    """A single listening session: a track played until stop, skip or end."""

    id: str
    track_id: TrackId
    duration_played: float  # seconds listened before the stop
    was_skipped: bool
    created_date: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayHistoryEntry":
        values = {
            "id": data["id"],
            "track_id": data["track_id"],
            "duration_played": float(data.get("duration_played", 0.0)),
            "was_skipped": bool(data.get("was_skipped", False)),
        }
        created = parse_timestamp(data.get("created_date"))
        if created is not None:
            values["created_date"] = created
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "track_id": self.track_id,
            "duration_played": self.duration_played,
            "was_skipped": self.was_skipped,
            "created_date": format_timestamp(self.created_date),
        }
