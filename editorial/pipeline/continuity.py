"""
Continuity Ledger

Cross-stage record of characters, locations, timeline events and
terminology for one manuscript. Only the continuity stage writes to it;
QA and callers read it.

Merging never replaces: matching entries (case-insensitive name) gain
aliases / appearances / descriptions / variants, new names are inserted.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Iterable, Any

from config.constants import CONTINUITY_CHECK_TYPES


def _append_unique(target: List, values: Iterable) -> int:
    added = 0
    for value in values:
        if value in (None, "") or value in target:
            continue
        target.append(value)
        added += 1
    return added


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_str_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]
    return []


def _earliest(a: Optional[int], b: Optional[int]) -> Optional[int]:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


@dataclass
class CharacterEntry:
    """A tracked character"""
    first_mention: Optional[int] = None  # chapter
    appearances: List[int] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)


@dataclass
class LocationEntry:
    """A tracked location"""
    first_mention: Optional[int] = None
    descriptions: List[str] = field(default_factory=list)


@dataclass
class TimelineEntry:
    """One event on the story timeline"""
    event: str
    chapter: Optional[int] = None
    timestamp: Optional[str] = None


@dataclass
class TermEntry:
    """A tracked term"""
    definition: str = ""
    variants: List[str] = field(default_factory=list)


@dataclass
class ContinuityLedger:
    """
    Per-manuscript continuity record.

    Example:
        >>> ledger = ContinuityLedger()
        >>> ledger.merge_character("Elizabeth", aliases=["Lizzy"])
        >>> ledger.merge_character("elizabeth", aliases=["Eliza"])
        >>> ledger.characters["Elizabeth"].aliases
        ['Lizzy', 'Eliza']
    """
    characters: Dict[str, CharacterEntry] = field(default_factory=dict)
    locations: Dict[str, LocationEntry] = field(default_factory=dict)
    timeline: List[TimelineEntry] = field(default_factory=list)
    terminology: Dict[str, TermEntry] = field(default_factory=dict)

    @staticmethod
    def _find_key(entries: Dict[str, Any], name: str) -> Optional[str]:
        wanted = name.strip().lower()
        for key in entries:
            if key.lower() == wanted:
                return key
        return None

    # ========== Merge operations ==========

    def merge_character(
        self,
        name: str,
        aliases: Optional[List[str]] = None,
        appearances: Optional[List[int]] = None,
        first_mention: Optional[int] = None,
    ) -> bool:
        """
        Insert or update a character.

        Returns:
            True if a new character was inserted
        """
        name = name.strip()
        if not name:
            return False

        key = self._find_key(self.characters, name)
        if key is None:
            entry = CharacterEntry(first_mention=first_mention)
            _append_unique(entry.aliases, [a for a in aliases or [] if a.lower() != name.lower()])
            _append_unique(entry.appearances, appearances or [])
            self.characters[name] = entry
            return True

        entry = self.characters[key]
        _append_unique(entry.aliases, [a for a in aliases or [] if a.lower() != key.lower()])
        _append_unique(entry.appearances, appearances or [])
        entry.first_mention = _earliest(entry.first_mention, first_mention)
        return False

    def merge_location(
        self,
        name: str,
        descriptions: Optional[List[str]] = None,
        first_mention: Optional[int] = None,
    ) -> bool:
        """Insert or update a location; True if inserted"""
        name = name.strip()
        if not name:
            return False

        key = self._find_key(self.locations, name)
        if key is None:
            entry = LocationEntry(first_mention=first_mention)
            _append_unique(entry.descriptions, descriptions or [])
            self.locations[name] = entry
            return True

        entry = self.locations[key]
        _append_unique(entry.descriptions, descriptions or [])
        entry.first_mention = _earliest(entry.first_mention, first_mention)
        return False

    def merge_term(
        self,
        term: str,
        definition: str = "",
        variants: Optional[List[str]] = None,
    ) -> bool:
        """Insert or update a term; an existing definition is kept unless empty"""
        term = term.strip()
        if not term:
            return False

        key = self._find_key(self.terminology, term)
        if key is None:
            entry = TermEntry(definition=definition or "")
            _append_unique(entry.variants, [v for v in variants or [] if v.lower() != term.lower()])
            self.terminology[term] = entry
            return True

        entry = self.terminology[key]
        if not entry.definition and definition:
            entry.definition = definition
        _append_unique(entry.variants, [v for v in variants or [] if v.lower() != key.lower()])
        return False

    def add_timeline_event(
        self,
        event: str,
        chapter: Optional[int] = None,
        timestamp: Optional[str] = None,
    ) -> bool:
        """Append an event unless the same (event, chapter) is already recorded"""
        event = event.strip()
        if not event:
            return False
        for existing in self.timeline:
            if existing.event.lower() == event.lower() and existing.chapter == chapter:
                return False
        self.timeline.append(TimelineEntry(event=event, chapter=chapter, timestamp=timestamp))
        return True

    def merge_findings(self, payload: Dict[str, Any], check_types: Optional[List[str]] = None) -> Dict[str, int]:
        """
        Apply a decoded continuity payload.

        Args:
            payload: {"charactersTracked": [...], "timelineEvents": [...],
                      "locationsTracked": [...], "termsTracked": [...]}
            check_types: Restrict to these ledgers (default: all)

        Returns:
            Count of new entries per ledger
        """
        checks = set(check_types or CONTINUITY_CHECK_TYPES)
        added = {"characters": 0, "locations": 0, "timeline": 0, "terminology": 0}

        if "characters" in checks:
            for item in _as_list(payload.get("charactersTracked")):
                if isinstance(item, str):
                    item = {"name": item}
                if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                    continue
                appearances = [a for a in (_as_int(v) for v in item.get("appearances") or []) if a is not None]
                if self.merge_character(
                    item["name"],
                    aliases=_as_str_list(item.get("aliases")),
                    appearances=appearances,
                    first_mention=_as_int(item.get("firstMention")),
                ):
                    added["characters"] += 1

        if "locations" in checks:
            for item in _as_list(payload.get("locationsTracked")):
                if isinstance(item, str):
                    item = {"name": item}
                if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                    continue
                descriptions = _as_str_list(item.get("descriptions")) or _as_str_list(item.get("description"))
                if self.merge_location(
                    item["name"],
                    descriptions=descriptions,
                    first_mention=_as_int(item.get("firstMention", item.get("chapter"))),
                ):
                    added["locations"] += 1

        if "timeline" in checks:
            for item in _as_list(payload.get("timelineEvents")):
                if isinstance(item, str):
                    item = {"event": item}
                if not isinstance(item, dict) or not isinstance(item.get("event"), str):
                    continue
                timestamp = item.get("timestamp")
                if self.add_timeline_event(
                    item["event"],
                    chapter=_as_int(item.get("chapter")),
                    timestamp=str(timestamp) if timestamp else None,
                ):
                    added["timeline"] += 1

        if "terminology" in checks:
            for item in _as_list(payload.get("termsTracked")):
                if not isinstance(item, dict) or not isinstance(item.get("term"), str):
                    continue
                definition = item.get("definition")
                if self.merge_term(
                    item["term"],
                    definition=definition if isinstance(definition, str) else "",
                    variants=_as_str_list(item.get("variants")),
                ):
                    added["terminology"] += 1

        return added

    # ========== Views ==========

    def summary(self) -> Dict[str, int]:
        return {
            "characters": len(self.characters),
            "locations": len(self.locations),
            "timeline_events": len(self.timeline),
            "terms": len(self.terminology),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "characters": {k: asdict(v) for k, v in self.characters.items()},
            "locations": {k: asdict(v) for k, v in self.locations.items()},
            "timeline": [asdict(e) for e in self.timeline],
            "terminology": {k: asdict(v) for k, v in self.terminology.items()},
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ContinuityLedger":
        if not data:
            return cls()
        return cls(
            characters={k: CharacterEntry(**v) for k, v in (data.get("characters") or {}).items()},
            locations={k: LocationEntry(**v) for k, v in (data.get("locations") or {}).items()},
            timeline=[TimelineEntry(**e) for e in data.get("timeline") or []],
            terminology={k: TermEntry(**v) for k, v in (data.get("terminology") or {}).items()},
        )
