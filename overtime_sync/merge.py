"""
Merge engine for record collections.

The remote blob store offers no per-record API and no conflict detection, so
every device reconciles whole collections itself with one asymmetric rule:

- every record of the *authoritative* side is kept as-is;
- a record of the *supplementary* side is kept only if its id is unknown to
  the authoritative side (typically a record created on this device and not
  pushed yet).

There is no field-level merge and no timestamp tie-break for ids present on
both sides. Ids are never dropped, but if two devices change the same existing
record between two sync cycles, the device that completes its write last wins
and the other change is lost. That limitation is accepted: the backend has no
transactional primitive that would make a stronger rule meaningful.

Usage:
    from overtime_sync.merge import merge

    merged = merge(remote_records, local_records)
"""

from __future__ import annotations

from typing import Callable, Dict, Hashable, Iterable, List, TypeVar

from overtime_sync.domain.models import Record

T = TypeVar("T")


def union_by_key(
    authoritative: Iterable[T],
    supplementary: Iterable[T],
    key: Callable[[T], Hashable],
) -> List[T]:
    """
    Union two collections on ``key``; the authoritative side wins collisions.

    Within one input the first occurrence of a key wins. Output keeps first-seen
    order (authoritative items, then surviving supplementary items).
    """
    by_key: Dict[Hashable, T] = {}
    for item in authoritative:
        by_key.setdefault(key(item), item)
    for item in supplementary:
        by_key.setdefault(key(item), item)
    return list(by_key.values())


def sort_records(records: Iterable[Record]) -> List[Record]:
    """
    Order records by ``created_at`` descending, ties by ``id`` ascending.
    """
    # Two stable passes: secondary key first, then the primary key.
    by_id = sorted(records, key=lambda record: record.id)
    return sorted(by_id, key=lambda record: record.created_at, reverse=True)


def merge(authoritative: Iterable[Record], supplementary: Iterable[Record]) -> List[Record]:
    """
    Merge two record collections into one canonical, ordered collection.

    Parameters
    ----------
    authoritative : iterable[Record]
        Snapshot that wins every id collision (normally the remote snapshot).
    supplementary : iterable[Record]
        Snapshot that only contributes ids absent from ``authoritative``.

    Returns
    -------
    List[Record]
        Records of both sides with unique ids, sorted by ``created_at``
        descending and then ``id`` ascending.
    """
    return sort_records(union_by_key(authoritative, supplementary, key=lambda record: record.id))


__all__ = ["merge", "sort_records", "union_by_key"]
