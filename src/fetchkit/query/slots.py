"""Slot registry: many live callers sharing one logical query or connection.

Each entry key owns a map of slots with per-entry, monotonically increasing
ids that are never reused. An entry exists only while it holds at least one
slot.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

T = TypeVar("T")


@dataclass
class SlotEntry(Generic[T]):
    """Slots registered under one entry key."""

    next_id: int = 0
    slots: dict[int, T] = field(default_factory=dict)


class SlotRegistry(Generic[T]):
    """
    Arena of stable-id slots grouped by entry key.

    Examples:
        >>> registry = SlotRegistry[str]()
        >>> first = registry.insert("get_todo", "a")
        >>> second = registry.insert("get_todo", "b")
        >>> (first, second)
        (0, 1)
        >>> registry.remove("get_todo", first)
        'a'
    """

    def __init__(self) -> None:
        self._entries: dict[str, SlotEntry[T]] = {}

    def insert(self, entry_key: str, payload: T) -> int:
        """
        Register payload under entry_key.

        Returns:
            Slot id, unique for the lifetime of the entry
        """
        entry = self._entries.setdefault(entry_key, SlotEntry())
        slot_id = entry.next_id
        entry.slots[slot_id] = payload
        entry.next_id += 1
        return slot_id

    def get(self, entry_key: str, slot_id: int) -> T | None:
        """Payload of one slot, or None if the entry or slot is gone."""
        entry = self._entries.get(entry_key)
        if entry is None:
            return None
        return entry.slots.get(slot_id)

    def remove(self, entry_key: str, slot_id: int) -> T | None:
        """
        Remove one slot; deletes the entry once its last slot is gone.

        Returns:
            Removed payload, or None if it was not registered
        """
        entry = self._entries.get(entry_key)
        if entry is None:
            return None

        payload = entry.slots.pop(slot_id, None)
        if not entry.slots:
            del self._entries[entry_key]
        return payload

    def payloads(self, entry_key: str) -> list[T]:
        """Snapshot of the payloads under entry_key, in slot id order."""
        entry = self._entries.get(entry_key)
        if entry is None:
            return []
        return [entry.slots[slot_id] for slot_id in sorted(entry.slots)]

    def entry_keys(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, entry_key: str) -> bool:
        return entry_key in self._entries

    def __len__(self) -> int:
        """Number of live entries."""
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))


class SlotScope(Protocol):
    """Decides which registry entry a live query joins."""

    def entry_key(self, endpoint_name: str, cache_key: str) -> str:
        ...

    def broadcast_keys(self, endpoint_name: str, registry: SlotRegistry) -> list[str]:
        ...


class EndpointScope:
    """
    One entry per endpoint name.

    Every live caller of an endpoint shares the entry whatever its
    parameters, so an update by endpoint name reaches all of them.
    """

    def entry_key(self, endpoint_name: str, cache_key: str) -> str:
        return endpoint_name

    def broadcast_keys(self, endpoint_name: str, registry: SlotRegistry) -> list[str]:
        return [endpoint_name] if endpoint_name in registry else []


class ParamsScope:
    """
    One entry per cache key.

    Updates addressed to a cache key only reach callers with identical
    parameters; an update by endpoint name still reaches every entry of
    that endpoint.
    """

    def entry_key(self, endpoint_name: str, cache_key: str) -> str:
        return cache_key

    def broadcast_keys(self, endpoint_name: str, registry: SlotRegistry) -> list[str]:
        prefix = f"{endpoint_name}:"
        return [key for key in registry.entry_keys() if key.startswith(prefix)]


__all__ = [
    "SlotEntry",
    "SlotRegistry",
    "SlotScope",
    "EndpointScope",
    "ParamsScope",
]
