"""Cart contents and their storage encoding.

The cart is a mapping from product id to an entry. Stored form is a JSON
object:

    {"<product id>": {"quantity": 2, "size": "M"}, ...}

Older payloads storing a bare quantity (``{"<product id>": 2}``) are
accepted on read.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from storefront.domain.exceptions import InvalidQuantityError, MalformedCartError


def validate_quantity(quantity: Any) -> int:
    """Return ``quantity`` if it is a positive integer.

    Raises:
        InvalidQuantityError: For zero, negatives, bools and non-integers.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(quantity)
    if quantity <= 0:
        raise InvalidQuantityError(quantity, "Quantity must be positive")
    return quantity


@dataclass(frozen=True)
class CartEntry:
    """One line of the cart.

    Attributes:
        quantity: Number of units, always positive.
        attributes: Extra line metadata (size, color, price snapshot...).
    """

    quantity: int
    attributes: dict[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        validate_quantity(self.quantity)

    @classmethod
    def from_stored(cls, value: Any) -> "CartEntry":
        """Build an entry from its stored JSON value.

        Raises:
            MalformedCartError: If the value is neither an object with a
                positive ``quantity`` nor a positive integer.
        """
        if isinstance(value, dict):
            attributes = {k: v for k, v in value.items() if k != "quantity"}
            quantity = value.get("quantity")
        else:
            attributes = {}
            quantity = value
        try:
            return cls(quantity=quantity, attributes=attributes)
        except InvalidQuantityError as e:
            raise MalformedCartError(e.message) from e

    def to_stored(self) -> dict[str, Any]:
        return {**self.attributes, "quantity": self.quantity}


CartItems = dict[str, CartEntry]


def encode_cart(items: Mapping[str, CartEntry]) -> str:
    """Serialize cart items for storage.

    Keys are sorted so that equal carts always encode to the same string.
    """
    return json.dumps(
        {product_id: entry.to_stored() for product_id, entry in items.items()},
        sort_keys=True,
        separators=(",", ":"),
    )


def decode_cart(raw: str | None) -> CartItems:
    """Parse a stored cart.

    Args:
        raw: Stored string, or None when the key is absent.

    Returns:
        Cart items; empty when ``raw`` is None or the JSON ``null``.

    Raises:
        MalformedCartError: If the value is not a JSON object of valid entries.
    """
    if raw is None:
        return {}
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MalformedCartError(f"invalid JSON ({e})", raw) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedCartError(f"expected an object, got {type(data).__name__}", raw)

    items: CartItems = {}
    for product_id, value in data.items():
        try:
            items[product_id] = CartEntry.from_stored(value)
        except MalformedCartError as e:
            raise MalformedCartError(f"entry {product_id!r}: {e.message}", raw) from e
    return items


def cart_to_dict(items: Mapping[str, CartEntry]) -> dict[str, dict[str, Any]]:
    """Plain JSON-compatible view of the cart."""
    return {product_id: entry.to_stored() for product_id, entry in items.items()}


def item_count(items: Mapping[str, CartEntry]) -> int:
    """Total units in the cart (the navigation badge number)."""
    return sum(entry.quantity for entry in items.values())
