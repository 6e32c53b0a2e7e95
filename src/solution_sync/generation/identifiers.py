"""Deterministic project identifiers.

The id of a module is the MD5 digest of its UTF-8 name read as a GUID with
little-endian leading fields, the same bytes-to-GUID layout .NET uses. Any
process derives the same id for the same name, so no registry file is
needed. Two names colliding in 128 bits is an accepted risk.
"""

from __future__ import annotations

import hashlib
import threading
import uuid


def derive_id(name: str) -> uuid.UUID:
    digest = hashlib.md5(name.encode("utf-8"), usedforsecurity=False).digest()
    return uuid.UUID(bytes_le=digest)


def format_id(identifier: uuid.UUID) -> str:
    """Upper-case, unbraced: ``1B4E28BA-2FA1-11D2-883F-0016D3CCA427``."""
    return str(identifier).upper()


class IdentifierRegistry:
    """Module name -> identifier. Grows lazily; entries are never removed.

    Keeping ids for modules that disappeared means stale descriptor files left
    on disk can never end up sharing an id with a different module.
    """

    def __init__(self) -> None:
        self._ids: dict[str, uuid.UUID] = {}
        self._lock = threading.Lock()

    def id_for(self, name: str) -> uuid.UUID:
        with self._lock:
            identifier = self._ids.get(name)
            if identifier is None:
                identifier = derive_id(name)
                self._ids[name] = identifier
            return identifier

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._ids)

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    def __len__(self) -> int:
        return len(self._ids)
