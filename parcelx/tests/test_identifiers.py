"""
Parcel identifier resolution tests.

Canonical object ids and legacy string ids must both resolve.
"""

import pytest
from sqlalchemy.dialects import sqlite

from parcelx.app.core.exceptions import MissingFieldError
from parcelx.app.domain.payments.identifiers import (
    is_object_id,
    new_object_id,
    resolve_parcel_id,
)
from parcelx.app.models.parcel import Parcel


def _sql(clause):
    return str(clause.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


def test_object_id_matches_both_forms():
    lookup = resolve_parcel_id("507f1f77bcf86cd799439011")

    assert lookup.canonical == "507f1f77bcf86cd799439011"
    assert lookup.literal == "507f1f77bcf86cd799439011"
    sql = _sql(lookup.where(Parcel))
    assert "parcels.id = '507f1f77bcf86cd799439011'" in sql
    assert "parcels.legacy_id = '507f1f77bcf86cd799439011'" in sql
    assert " OR " in sql


def test_uppercase_object_id_is_normalized():
    lookup = resolve_parcel_id("507F1F77BCF86CD799439011")

    assert lookup.canonical == "507f1f77bcf86cd799439011"
    assert lookup.literal == "507F1F77BCF86CD799439011"


def test_legacy_id_collapses_to_single_clause():
    lookup = resolve_parcel_id("P1")

    assert lookup.canonical is None
    sql = _sql(lookup.where(Parcel))
    assert sql == "parcels.legacy_id = 'P1'"


def test_surrounding_whitespace_is_ignored():
    assert resolve_parcel_id("  P1 ").literal == "P1"


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_missing_id_is_rejected(raw):
    with pytest.raises(MissingFieldError) as exc_info:
        resolve_parcel_id(raw)
    assert exc_info.value.details == {"field": "parcelId"}


def test_new_object_id_is_canonical():
    first, second = new_object_id(), new_object_id()

    assert is_object_id(first)
    assert first == first.lower()
    assert first != second
    assert resolve_parcel_id(first).canonical == first


def test_near_miss_is_not_an_object_id():
    assert not is_object_id("507f1f77bcf86cd79943901")   # 23 chars
    assert not is_object_id("507f1f77bcf86cd79943901z")  # non-hex
