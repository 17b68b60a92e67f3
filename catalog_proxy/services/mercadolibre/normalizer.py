"""
Maps raw MercadoLibre item payloads onto ListingDetail.

normalize_item never raises: missing or malformed fields fall back to empty
defaults so one odd listing cannot break a sync.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from catalog_proxy.core.enums import ListingStatus
from catalog_proxy.schemas.catalog import ListingDetail, ShippingInfo


def normalize_item(raw: Any) -> ListingDetail:
    item = raw if isinstance(raw, dict) else {}
    shipping = _as_dict(item.get("shipping"))

    return ListingDetail(
        id=_text(item.get("id")) or "",
        title=_text(item.get("title")) or "",
        price=_decimal(item.get("price")),
        currency=_text(item.get("currency_id")),
        status=ListingStatus.from_remote(item.get("status")),
        condition=_text(item.get("condition")),
        available_quantity=_quantity(item.get("available_quantity")),
        thumbnail_url=_thumbnail(item),
        image_url=_image(item),
        permalink=_text(item.get("permalink")),
        shipping=ShippingInfo(
            mode=_text(shipping.get("mode")),
            free_shipping=shipping.get("free_shipping") is True,
            local_pick_up=shipping.get("local_pick_up") is True,
            logistic_type=_text(shipping.get("logistic_type")),
        ),
        attributes=extract_attributes(item.get("attributes")),
    )


def extract_attributes(attributes: Any) -> Dict[str, str]:
    """Attribute name -> first textual value. Later duplicates overwrite earlier ones."""
    result: Dict[str, str] = {}
    if not isinstance(attributes, list):
        return result

    for attr in attributes:
        if not isinstance(attr, dict):
            continue
        name = _text(attr.get("name")) or _text(attr.get("id"))
        if not name:
            continue
        result[name] = _attribute_value(attr)
    return result


def _attribute_value(attr: Dict) -> str:
    value_name = _text(attr.get("value_name"))
    if value_name:
        return value_name

    struct = _as_dict(attr.get("value_struct"))
    number = _text(struct.get("number"))
    unit = _text(struct.get("unit"))
    if number or unit:
        return " ".join(part for part in (number, unit) if part)

    values = attr.get("values")
    if isinstance(values, list):
        for value in values:
            name = _text(_as_dict(value).get("name"))
            if name:
                return name
    return ""


def _thumbnail(item: Dict) -> Optional[str]:
    return _text(item.get("secure_thumbnail")) or _text(item.get("thumbnail"))


def _image(item: Dict) -> Optional[str]:
    pictures = item.get("pictures")
    if isinstance(pictures, list) and pictures:
        first = _as_dict(pictures[0])
        url = _text(first.get("secure_url")) or _text(first.get("url"))
        if url:
            return url
    return _thumbnail(item)


def _as_dict(value: Any) -> Dict:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return price if price.is_finite() else None


def _quantity(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        quantity = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(quantity, 0)
