from __future__ import annotations

from decimal import Decimal

import pytest

from helpers import FakeStores
from salerecords.domain.errors import SaleRecordError, SaleRecordErrorKind
from salerecords.domain.money import DEFAULT_ROUNDING, RoundingSpec, sum_fixed, to_fixed
from salerecords.domain.rounding import RoundingPolicyResolver, rounding_for_trim_code


@pytest.mark.parametrize(
    ("code", "digits", "strategy"),
    [
        ("C", 0, "ceil"),
        ("O", 1, "floor"),
        ("P", 1, "round"),
        ("Q", 1, "ceil"),
        ("R", 0, "round"),
        ("T", 0, "floor"),
    ],
)
def test_trim_codes_select_documented_policy(code, digits, strategy):
    assert rounding_for_trim_code(code) == RoundingSpec(digits=digits, strategy=strategy)


@pytest.mark.parametrize("code", ["", "A", None])
def test_empty_or_a_code_means_no_special_rounding(code):
    assert rounding_for_trim_code(code) == DEFAULT_ROUNDING


def test_unknown_trim_code_is_a_configuration_error():
    with pytest.raises(SaleRecordError) as excinfo:
        rounding_for_trim_code("Z")
    assert excinfo.value.kind is SaleRecordErrorKind.ROUNDING_TYPE


def test_to_fixed_directions():
    assert to_fixed(Decimal("1.01"), rounding_for_trim_code("C")) == Decimal("2")
    assert to_fixed(Decimal("1.99"), rounding_for_trim_code("T")) == Decimal("1")
    assert to_fixed(Decimal("2.5"), rounding_for_trim_code("R")) == Decimal("3")
    assert to_fixed(Decimal("1.26"), rounding_for_trim_code("O")) == Decimal("1.2")
    assert to_fixed(Decimal("1.21"), rounding_for_trim_code("Q")) == Decimal("1.3")
    assert to_fixed(Decimal("0.125")) == Decimal("0.13")
    assert to_fixed(0.1 + 0.2) == Decimal("0.30")


def test_sum_fixed_avoids_float_drift():
    assert sum_fixed([0.1, 0.2, 0.3]) == Decimal("0.60")


def test_resolver_reads_store_trim_code():
    stores = FakeStores()
    stores.add(7, trim_code="R")
    policy = RoundingPolicyResolver(stores).resolve(7)
    assert policy.trim_code == "R"
    assert policy.spec == RoundingSpec(digits=0, strategy="round")


def test_resolver_fails_for_missing_store():
    with pytest.raises(SaleRecordError) as excinfo:
        RoundingPolicyResolver(FakeStores()).resolve(404)
    assert excinfo.value.tag == "StoreNotExist"


def test_resolver_fails_for_store_without_rounding_configuration():
    stores = FakeStores()
    stores.add(8, trim_code=None)
    with pytest.raises(SaleRecordError) as excinfo:
        RoundingPolicyResolver(stores).resolve(8)
    assert excinfo.value.kind is SaleRecordErrorKind.ROUNDING_TYPE
