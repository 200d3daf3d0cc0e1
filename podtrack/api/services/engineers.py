"""Engineer roster: collapse registered accounts and imported profiles into one entry per person.

_group_identities is the single grouping rule. resolve_engineers (the /engineers roster and the
active-pods roster) and engineer_name_lookup (search-row name enrichment) both build on it. Both
are pure and rebuilt from the live identity set on every request, so a merge is reflected immediately.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol


class IdentityLike(Protocol):
    id: str
    email: str | None
    name: str | None
    is_imported_profile: bool
    merged_into_user_id: str | None


@dataclass(frozen=True)
class CanonicalIdentity:
    display_name: str
    key: str  # email for registered users, name for imported profiles
    source_id: str
    is_registered: bool
    is_imported: bool


def engineer_key(identity: IdentityLike) -> str:
    """Dedup key: name if present else email, lower-cased. Empty string when neither is set."""
    return (identity.name or identity.email or "").lower()


def _group_identities(
    identities: Iterable[IdentityLike],
) -> dict[str, tuple[CanonicalIdentity, list[IdentityLike]]]:
    """Group live identities by engineer key; each group carries its chosen canonical and all members.

    Tombstones (merged_into_user_id set) and identities with neither name nor email are skipped.
    A registered identity always beats an imported one; otherwise the first seen wins.
    """
    groups: dict[str, tuple[CanonicalIdentity, list[IdentityLike]]] = {}
    for ident in identities:
        if ident.merged_into_user_id is not None:
            continue
        key = ident.email or ident.name
        if not key:
            continue
        candidate = CanonicalIdentity(
            display_name=ident.name or key,
            key=key,
            source_id=ident.id,
            is_registered=not ident.is_imported_profile,
            is_imported=bool(ident.is_imported_profile),
        )
        group = engineer_key(ident)
        if group not in groups:
            groups[group] = (candidate, [ident])
            continue
        current, members = groups[group]
        members.append(ident)
        if candidate.is_registered and not current.is_registered:
            groups[group] = (candidate, members)
    return groups


def resolve_engineers(identities: Iterable[IdentityLike]) -> list[CanonicalIdentity]:
    """One canonical identity per engineer key, sorted by display name."""
    chosen = [canonical for canonical, _ in _group_identities(identities).values()]
    return sorted(chosen, key=lambda c: (c.display_name.casefold(), c.display_name, c.key))


def engineer_name_lookup(identities: Iterable[IdentityLike]) -> dict[str, str]:
    """Request-local map from an assigned_engineer value to display name.

    Every member of a group (not only the chosen one) maps its email and name to the group's
    display name, so a pod assigned to the losing duplicate still shows the person's name.
    Keys are stored as-is and lower-cased.
    """
    lookup: dict[str, str] = {}
    for canonical, members in _group_identities(identities).values():
        values = [canonical.key, canonical.display_name]
        for member in members:
            values.extend(v for v in (member.email, member.name) if v)
        for v in values:
            lookup.setdefault(v, canonical.display_name)
            lookup.setdefault(v.lower(), canonical.display_name)
    return lookup


def display_name_for(lookup: dict[str, str], assigned_engineer: str | None) -> str:
    """Resolved name for assigned_engineer; falls back to the raw value, "" when unassigned."""
    if not assigned_engineer:
        return ""
    return lookup.get(assigned_engineer) or lookup.get(assigned_engineer.lower()) or assigned_engineer
