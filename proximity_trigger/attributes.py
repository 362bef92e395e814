"""Character attribute lookup for ``{subject.attribute}`` placeholders.

Lookup order (first hit wins):
  1. exact attribute name
  2. case-insensitive attribute name
  3. the same two checks for every alias of the name (hp → currentHP, …)
  4. a case-insensitive, depth-limited search for the name or any alias inside
     the JSON documents stored in well-known container attributes
  5. the placeholder ``[<name>?]``

A missing character yields ``[No Character]`` and an attribute that exists
with no value yields ``[Empty]``. Nothing here raises: host failures and
malformed container documents are logged and count as "not found".
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

logger = logging.getLogger(__name__)

NO_CHARACTER = "[No Character]"
EMPTY = "[Empty]"

CONTAINER_ATTRIBUTES = ("store", "builder", "data", "character", "stats")
MAX_SEARCH_DEPTH = 10

_MISSING = object()

# lowercase request → names to try (in order)
_ALIASES: dict[str, list[str]] = {
    "hp": ["currentHP", "current_hp", "hitpoints", "hit_points", "HP", "health"],
    "maxhp": ["maximumWithoutTemp", "hp_max", "maximum_hp", "maxhp", "max_hp"],
    "gold": ["gold", "gp", "goldPieces", "gold_pieces"],
    "level": ["level", "characterLevel", "character_level", "lvl"],
    "ac": ["ac", "armorClass", "armor_class", "armour_class", "AC"],
    "inspiration": ["inspiration", "isInspired", "is_inspired", "inspired"],
}
_ALIASES["max_hp"] = _ALIASES["maxhp"]
_ALIASES["gp"] = _ALIASES["gold"]
_ALIASES["lvl"] = _ALIASES["level"]
_ALIASES["inspired"] = _ALIASES["inspiration"]

_ABILITIES = {
    "str": "strength",
    "dex": "dexterity",
    "con": "constitution",
    "int": "intelligence",
    "wis": "wisdom",
    "cha": "charisma",
}
for _short, _long in _ABILITIES.items():
    _scores = [_short, _long, _short.upper(), _long.capitalize()]
    _ALIASES[_short] = _ALIASES[_long] = _scores
    _mods = [f"{_long}_mod", f"{_short}_mod", f"{_long}Mod", f"{_short}Mod"]
    _ALIASES[f"{_long}_mod"] = _ALIASES[f"{_short}_mod"] = _mods


class AttributeStore(Protocol):
    """Read access to one character's attributes.

    ``get`` returns the raw current value; ``None`` means the attribute exists
    but is empty. Callers only ask for names listed by ``attribute_names``.
    """

    @property
    def name(self) -> str: ...

    def attribute_names(self) -> Iterable[str]: ...

    def get(self, attribute: str) -> Any: ...


class DictAttributeStore:
    """AttributeStore backed by a plain dict."""

    def __init__(self, name: str, attributes: Mapping[str, Any] | None = None) -> None:
        self._name = name
        self._attributes: dict[str, Any] = dict(attributes or {})

    @property
    def name(self) -> str:
        return self._name

    def attribute_names(self) -> Iterable[str]:
        return list(self._attributes)

    def get(self, attribute: str) -> Any:
        return self._attributes.get(attribute)

    def set(self, attribute: str, value: Any) -> None:
        self._attributes[attribute] = value


def alias_names(name: str) -> list[str]:
    """The requested name followed by its known aliases, without duplicates."""
    names = [name]
    for alias in _ALIASES.get(name.lower(), []):
        if alias not in names:
            names.append(alias)
    return names


def search_document(document: Any, key: str, max_depth: int = MAX_SEARCH_DEPTH, _depth: int = 0) -> Any:
    """Find the value of ``key`` (case-insensitive) anywhere in a JSON-like tree.

    Keys at the current mapping level are checked before descending. Recursion
    stops at max_depth. Returns None when nothing matches.
    """
    if isinstance(document, Mapping):
        lowered = key.lower()
        for k, v in document.items():
            if str(k).lower() == lowered:
                return v
        children: Iterable[Any] = document.values()
    elif isinstance(document, Sequence) and not isinstance(document, (str, bytes)):
        children = document
    else:
        return None

    if _depth >= max_depth:
        return None
    for child in children:
        if isinstance(child, (Mapping, list, tuple)):
            found = search_document(child, key, max_depth, _depth + 1)
            if found is not None:
                return found
    return None


def format_value(value: Any) -> str:
    """Render an attribute value as display text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def _flat_lookup(store: AttributeStore, names: list[str]) -> Any:
    available = list(store.attribute_names())
    for candidate in names:
        if candidate in available:
            return store.get(candidate)
        lowered = candidate.lower()
        for attr in available:
            if attr.lower() == lowered:
                return store.get(attr)
    return _MISSING


def _container_lookup(store: AttributeStore, names: list[str], max_depth: int) -> Any:
    available = set(store.attribute_names())
    for container in CONTAINER_ATTRIBUTES:
        if container not in available:
            continue
        raw = store.get(container)
        try:
            document = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except (ValueError, TypeError) as e:
            logger.warning("Container attribute %r on %r is not JSON: %s", container, store.name, e)
            continue
        for candidate in names:
            found = search_document(document, candidate, max_depth)
            if found is not None:
                return found
    return _MISSING


def find_attribute(store: AttributeStore, name: str, max_depth: int = MAX_SEARCH_DEPTH) -> Any:
    """Raw attribute value, or a sentinel when absent. Host errors count as absent."""
    names = alias_names(name)
    try:
        value = _flat_lookup(store, names)
        if value is _MISSING:
            value = _container_lookup(store, names, max_depth)
    except Exception as e:
        logger.warning("Attribute lookup %r failed: %s", name, e)
        return _MISSING
    return value


def resolve_attribute(store: AttributeStore | None, name: str, max_depth: int = MAX_SEARCH_DEPTH) -> str:
    """Attribute value as text, or one of the visible placeholders."""
    if store is None:
        return NO_CHARACTER
    value = find_attribute(store, name, max_depth)
    if value is _MISSING:
        return f"[{name}?]"
    if value is None or value == "":
        return EMPTY
    try:
        return format_value(value)
    except (TypeError, ValueError) as e:
        logger.warning("Attribute %r on %r cannot be shown: %s", name, store.name, e)
        return f"[{name}?]"


def sheet_name(sheet: AttributeStore | None) -> str | None:
    """Trimmed character name of a sheet, or None when it has none or cannot be read."""
    if sheet is None:
        return None
    try:
        name = sheet.name
    except Exception as e:
        logger.warning("Character sheet has no readable name: %s", e)
        return None
    return name.strip() if name and name.strip() else None
