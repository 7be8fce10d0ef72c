"""Map supplier payloads onto normalized product fields."""

import re
import unicodedata
from typing import Any, Dict, List, Optional

from storefront_jobs.config import settings


def parse_price(value: Any) -> Optional[int]:
    """Round a supplier price string to an integer, treating zero as missing."""
    if value in (None, "", "0", "0.00"):
        return None
    try:
        price = round(float(str(value)))
    except ValueError:
        return None
    return price if price > 0 else None


def extract_warehouses(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Warehouses of a SIMPLE product. VARIABLE stock lives in its variations."""
    if payload.get("type") != "SIMPLE":
        return []

    inventory = payload.get("inventory") or {}
    if isinstance(inventory.get("warehouses"), list) and inventory["warehouses"]:
        return inventory["warehouses"]
    if isinstance(payload.get("warehouse_product"), list) and payload["warehouse_product"]:
        return payload["warehouse_product"]
    return []


def total_stock(payload: Dict[str, Any]) -> int:
    """Sum warehouse stock for SIMPLE products, variation stock for VARIABLE ones."""
    if payload.get("type") == "VARIABLE":
        entries = payload.get("variations") or []
    else:
        entries = extract_warehouses(payload)

    stock = 0
    for entry in entries:
        try:
            stock += int(entry.get("stock") or 0)
        except (TypeError, ValueError):
            continue
    return stock


def extract_category_ids(payload: Dict[str, Any]) -> List[int]:
    ids = []
    for category in payload.get("categories") or []:
        category_id = category.get("id") or (category.get("pivot") or {}).get("category_id")
        if isinstance(category_id, int):
            ids.append(category_id)
    return ids


def main_category_id(payload: Dict[str, Any]) -> Optional[int]:
    categories = payload.get("categories") or []
    if not categories:
        return None
    first = categories[0]
    return (first.get("pivot") or {}).get("category_id") or first.get("id")


def main_image_path(payload: Dict[str, Any]) -> Optional[str]:
    gallery = payload.get("gallery") or (payload.get("media") or {}).get("gallery") or []
    if not gallery:
        return None
    main = next((image for image in gallery if image.get("main")), gallery[0])
    return main.get("urlS3")


def normalize_product(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build normalized product fields from a raw listing payload.

    Args:
        payload: Product object as returned by the supplier listing

    Returns:
        Dict of SupplierProduct column values (enrichment fields excluded)

    Raises:
        ValueError: If the payload has no product id
    """
    supplier_id = payload.get("id")
    if not isinstance(supplier_id, int):
        raise ValueError(f"Payload without a valid product id: {supplier_id!r}")

    product_type = payload.get("type") or "SIMPLE"
    pricing = payload.get("pricing") or {}
    sale_price = parse_price(payload.get("sale_price") or pricing.get("sale_price"))
    suggested_price = parse_price(payload.get("suggested_price") or pricing.get("suggested_price"))

    price = sale_price or suggested_price or 0
    if product_type == "VARIABLE" and price == 0:
        variation_prices = [
            parse_price(v.get("sale_price") or v.get("suggested_price")) for v in payload.get("variations") or []
        ]
        variation_prices = [p for p in variation_prices if p]
        if variation_prices:
            price = min(variation_prices)

    sku = f"{payload['sku']}-DP-{supplier_id}" if payload.get("sku") else f"DP-{supplier_id}"
    variations = payload.get("variations") if product_type == "VARIABLE" else None

    return {
        "supplier_id": supplier_id,
        "name": payload.get("name") or "",
        "product_type": product_type,
        "sku": sku,
        "price": price,
        "suggested_price": suggested_price,
        "stock": total_stock(payload),
        "active": payload.get("active", True) is not False,
        "category_id": main_category_id(payload),
        "category_ids": extract_category_ids(payload) or None,
        "main_image_path": main_image_path(payload),
        "warehouses": extract_warehouses(payload) or None,
        "variations": variations or None,
    }


def extract_images(detail: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Photo entries from a product detail payload."""
    photos = detail.get("photos")
    if not isinstance(photos, list):
        return []
    return [
        {
            "id": photo.get("id"),
            "url": photo.get("url"),
            "urlS3": photo.get("urlS3"),
            "main": bool(photo.get("main")),
        }
        for photo in photos
    ]


def image_url(path: Optional[str]) -> Optional[str]:
    if not path or not path.strip():
        return None
    if path.startswith("http"):
        return path
    return settings.SUPPLIER_IMAGE_BASE_URL.rstrip("/") + "/" + path.lstrip("/")


def generate_handle(name: str, supplier_id: int) -> str:
    """URL handle, unique through the supplier id suffix."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode()
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_name.lower()).strip("-")
    return f"{slug}-{supplier_id}" if slug else f"product-{supplier_id}"
