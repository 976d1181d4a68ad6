from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from salerecords.core.context import TraceContext
from salerecords.domain.errors import SaleRecordError, SaleRecordErrorKind
from salerecords.domain.money import DEFAULT_ROUNDING, RoundingSpec

if TYPE_CHECKING:
    from salerecords.clients.lookups import StoreLookup

logger = logging.getLogger(__name__)

TRIM_CODES: dict[str, RoundingSpec] = {
    "C": RoundingSpec(digits=0, strategy="ceil"),
    "O": RoundingSpec(digits=1, strategy="floor"),
    "P": RoundingSpec(digits=1, strategy="round"),
    "Q": RoundingSpec(digits=1, strategy="ceil"),
    "R": RoundingSpec(digits=0, strategy="round"),
    "T": RoundingSpec(digits=0, strategy="floor"),
}
DEFAULT_TRIM_CODES = frozenset({"", "A"})


@dataclass(frozen=True)
class RoundingPolicy:
    spec: RoundingSpec
    trim_code: str


def rounding_for_trim_code(trim_code: str | None) -> RoundingSpec:
    code = (trim_code or "").strip()
    if code in DEFAULT_TRIM_CODES:
        return DEFAULT_ROUNDING
    spec = TRIM_CODES.get(code)
    if spec is None:
        raise SaleRecordError(SaleRecordErrorKind.ROUNDING_TYPE, f"unrecognized store trim code: {code!r}")
    return spec


class RoundingPolicyResolver:
    def __init__(self, stores: "StoreLookup"):
        self.stores = stores

    def resolve(self, store_id: int, trace: TraceContext | None = None) -> RoundingPolicy:
        store = self.stores.get_store(store_id, trace=trace)
        if store is None:
            raise SaleRecordError(SaleRecordErrorKind.STORE_NOT_EXIST, f"Store is null:StoreID={store_id}")
        if store.rounding_type is None:
            raise SaleRecordError(
                SaleRecordErrorKind.ROUNDING_TYPE,
                f"Store dose not have RoundingType:StoreID={store_id}",
            )
        trim_code = store.rounding_type.code or ""
        spec = rounding_for_trim_code(trim_code)
        logger.debug("store %s rounding trim_code=%r spec=%s", store_id, trim_code, spec)
        return RoundingPolicy(spec=spec, trim_code=trim_code)
