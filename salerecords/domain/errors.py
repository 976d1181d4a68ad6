from __future__ import annotations

from enum import Enum


class SaleRecordErrorKind(Enum):
    """Closed set of rejection reasons, each with a stable tag, message and localized detail."""

    SALE_RECORD = ("SaleRecord", "Sale record could not be processed", "上传数据处理异常！")
    CREATED_ID = ("CreatedId", "CreatedId not avalable 0", "登录人员信息错误！")
    POS_SALESMAN_ID = ("POSSalesmanId", "POS then SalesmanId not avalable 0", "销售人员信息错误！")
    STORE_ID = ("StoreId", "StoreId not avalable 0", "卖场代码为空！")
    ITEM_FEE_RATE = ("ItemFeeRate", "Item FeeRate not avalable 0", "正常扣率为0！")
    TOTAL_PRICE = ("TotalPrice", "TotalPrice not equals sum dtl price", "总金额计算错误！")
    DISCOUNT_PRICE = ("DiscountPrice", "DiscountPrice not correct", "折扣金额计算错误！")
    DISCOUNT_PRICE_NOT_MATCH_OFFER = (
        "DiscountPriceNotMatchOffer",
        "DiscountPrice not equals sum cartoffer's price",
        "折扣金额和促销金额不匹配！",
    )
    OFFER_NO = ("OfferNo", "OfferNo not avalable", "促销信息异常！")
    STORE_NOT_EXIST = ("StoreNotExist", "Store is not exists", "卖场信息异常！")
    BRAND_NOT_MATCH = ("BrandNotMatch", "Store and Brand can't match", "卖场品牌信息不匹配！")
    SKU_NOT_EXIST = ("SkuNotExist", "Sku is not exists", "商品信息异常！")
    SKU_LIST_PRICE = ("SkuListPrice", "Sku's listprice not correct", "商品吊牌金额不匹配！")
    PRODUCT_NOT_MATCH = ("ProductNotMatch", "Sku and Product can't match", "商品信息不匹配！")
    PRODUCT_BRAND = ("ProductBrand", "Product's brand is not correct", "商品品牌信息不匹配！")
    DISTRIBUTED_CASH_PRICE = (
        "DistributedCashPrice",
        "Distributed CashPrice is not correct",
        "商品实付金额计算错误！",
    )
    TOTAL_DISTRIBUTED_PAYMENT_PRICE = (
        "TotalDistributedPaymentPrice",
        "Distributed PaymentPrice is not correct",
        "商品支付金额计算错误！",
    )
    MILEAGE = ("Mileage", "Mileage is not correct", "积分计算错误！")
    PAYMENT_NOT_EXIST = ("PayMentNotExist", "PayMent not exists", "支付信息不存在！")
    ROUNDING_TYPE = ("RoundingType", "Store RoundingType not correct", "卖场舍入设置异常！")

    def __init__(self, tag: str, message: str, detail: str):
        self.tag = tag
        self.message = message
        self.detail = detail

    @classmethod
    def from_tag(cls, tag: str) -> "SaleRecordErrorKind":
        for kind in cls:
            if kind.tag == tag:
                return kind
        raise ValueError(f"unknown error tag: {tag}")


class SaleRecordError(Exception):
    def __init__(self, kind: SaleRecordErrorKind, message: str | None = None):
        self.kind = kind
        self.message = message or kind.message
        super().__init__(self.message)

    @property
    def tag(self) -> str:
        return self.kind.tag

    @property
    def detail(self) -> str:
        return self.kind.detail


class ExternalServiceError(RuntimeError):
    def __init__(self, service: str, message: str, status_code: int | None = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


def classify(exc: BaseException) -> tuple[str, str, str]:
    """Map any exception onto (error tag, message, detail)."""
    if isinstance(exc, SaleRecordError):
        return exc.tag, exc.message, exc.detail
    generic = SaleRecordErrorKind.SALE_RECORD
    return generic.tag, str(exc) or exc.__class__.__name__, generic.detail
