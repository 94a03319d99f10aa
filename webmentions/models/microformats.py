"""Typed tree for parsed microformats2 data.

mf2py returns nested dictionaries whose property values may be plain
strings, embedded items, or small dictionaries (``e-*`` html/value pairs,
``u-photo`` value/alt pairs). The tree below normalizes that shape so the
extraction code can match on item types and property names.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

PropertyValue = Union[str, "MicroformatItem"]


@dataclass(frozen=True)
class MicroformatItem:
    """A single microformats2 item, e.g. an h-entry or h-card."""

    types: FrozenSet[str]
    properties: Mapping[str, Tuple[PropertyValue, ...]] = field(default_factory=dict)
    children: Tuple["MicroformatItem", ...] = ()
    value: str = ""

    def has_type(self, item_type: str) -> bool:
        return item_type in self.types

    def has_property(self, name: str) -> bool:
        return bool(self.properties.get(name))

    def first_string(self, name: str) -> str:
        """First string value of a property, or "" if there is none."""
        for value in self.properties.get(name, ()):
            if isinstance(value, str):
                return value
        return ""

    def strings(self, name: str) -> List[str]:
        return [value for value in self.properties.get(name, ()) if isinstance(value, str)]

    def items(self, name: str) -> List["MicroformatItem"]:
        return [value for value in self.properties.get(name, ()) if isinstance(value, MicroformatItem)]


@dataclass(frozen=True)
class MicroformatDocument:
    """Top level items of a page plus its document-level rel links."""

    items: Tuple[MicroformatItem, ...] = ()
    rels: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def first_rel(self, rel: str) -> str:
        links = self.rels.get(rel, ())
        return links[0] if links else ""


def _convert_value(raw: Any) -> Optional[PropertyValue]:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        if "type" in raw:
            return _convert_item(raw)
        value = raw.get("value")
        if isinstance(value, str):
            return value
    return None


def _convert_item(raw: Dict[str, Any]) -> MicroformatItem:
    properties: Dict[str, Tuple[PropertyValue, ...]] = {}
    for name, values in raw.get("properties", {}).items():
        converted = [_convert_value(value) for value in values]
        properties[name] = tuple(value for value in converted if value is not None)

    value = raw.get("value", "")
    return MicroformatItem(
        types=frozenset(raw.get("type", ())),
        properties=properties,
        children=tuple(_convert_item(child) for child in raw.get("children", ())),
        value=value if isinstance(value, str) else "",
    )


def document_from_mf2(parsed: Dict[str, Any]) -> MicroformatDocument:
    """Convert the dictionary produced by mf2py into a MicroformatDocument."""
    return MicroformatDocument(
        items=tuple(_convert_item(item) for item in parsed.get("items", ())),
        rels={rel: tuple(urls) for rel, urls in parsed.get("rels", {}).items()},
    )
