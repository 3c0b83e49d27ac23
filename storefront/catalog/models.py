"""Catalog data models.

The storefront taxonomy is three levels deep:

    Category > Subcategory > ProductType

Products are routable by id independently of the taxonomy. Backend
documents use Mongo-style ``_id`` keys and ``*_name`` display fields.
"""

from dataclasses import dataclass, field
from typing import Any


def _document_id(data: dict[str, Any]) -> str:
    """Extract the id of a backend document (``_id`` or ``id``)."""
    value = data.get("_id", data.get("id"))
    if value is None or value == "":
        raise KeyError("_id")
    return str(value)


@dataclass(frozen=True)
class Category:
    """Top-level taxonomy node.

    Attributes:
        id: Category identifier.
        name: Display name (e.g. "Barbati").
    """

    id: str
    name: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Category":
        """Create from backend document."""
        return cls(id=_document_id(data), name=str(data["category_name"]))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Subcategory:
    """Second-level taxonomy node, child of exactly one category.

    Attributes:
        id: Subcategory identifier.
        category_id: Parent category identifier.
        name: Display name.
    """

    id: str
    category_id: str
    name: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Subcategory":
        """Create from backend document."""
        return cls(
            id=_document_id(data),
            category_id=str(data["category_id"]),
            name=str(data["subcategory_name"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "category_id": self.category_id, "name": self.name}


@dataclass(frozen=True)
class ProductType:
    """Third-level taxonomy node, child of exactly one subcategory.

    Attributes:
        id: Product type identifier.
        subcategory_id: Parent subcategory identifier.
        name: Display name (may contain spaces, e.g. "Fuste scurte").
    """

    id: str
    subcategory_id: str
    name: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ProductType":
        """Create from backend document."""
        return cls(
            id=_document_id(data),
            subcategory_id=str(data["subcategory_id"]),
            name=str(data["product_type_name"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subcategory_id": self.subcategory_id,
            "name": self.name,
        }


@dataclass(frozen=True)
class Product:
    """A sellable product.

    Only the id matters for routing; every other backend field is kept
    verbatim in ``attributes`` for the product page.
    """

    id: str
    attributes: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Product":
        """Create from backend document."""
        product_id = _document_id(data)
        attributes = {k: v for k, v in data.items() if k not in ("_id", "id")}
        return cls(id=product_id, attributes=attributes)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.attributes}
