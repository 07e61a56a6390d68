"""
Parcel Identifier Resolver.

Parcels created by this service carry a canonical object identifier
(12 bytes rendered as 24 hex characters). Parcels imported from the
previous store may instead be known by an opaque string id kept in
``Parcel.legacy_id``. Callers can hand us either form, so every lookup
goes through a ``ParcelLookup`` that matches both.
"""

import os
import re
import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_

from parcelx.app.core.exceptions import MissingFieldError

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def is_object_id(value: str) -> bool:
    return bool(_OBJECT_ID_RE.match(value))


def new_object_id() -> str:
    """Generate a canonical id: 4-byte big-endian timestamp followed by 8 random bytes."""
    return (int(time.time()).to_bytes(4, "big") + os.urandom(8)).hex()


@dataclass(frozen=True)
class ParcelLookup:
    """Predicate matching a parcel by canonical id or by legacy string id."""
    literal: str
    canonical: Optional[str] = None

    def where(self, model):
        """Build the SQLAlchemy clause for ``model`` (a mapped class with id/legacy_id)."""
        if self.canonical is None:
            return model.legacy_id == self.literal
        return or_(model.id == self.canonical, model.legacy_id == self.literal)


def resolve_parcel_id(raw: Optional[str], field: str = "parcelId") -> ParcelLookup:
    """
    Normalize a caller-supplied parcel id into a lookup predicate.

    Raises:
        MissingFieldError: if the value is missing or blank
    """
    if raw is None or not str(raw).strip():
        raise MissingFieldError(field)

    literal = str(raw).strip()
    if is_object_id(literal):
        return ParcelLookup(literal=literal, canonical=literal.lower())
    return ParcelLookup(literal=literal)
