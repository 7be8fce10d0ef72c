"""Supplier API response schemas."""

from typing import Any, Dict, List

from pydantic import BaseModel


class ProductPage(BaseModel):
    """One page of the supplier product listing."""

    count: int = 0
    objects: List[Dict[str, Any]] = []
