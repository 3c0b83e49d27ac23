"""Domain layer module.

Auth state, cart contents and the exceptions raised by the core.
"""

from storefront.domain.auth import AuthState, AuthStatus
from storefront.domain.cart import CartEntry, decode_cart, encode_cart
from storefront.domain.exceptions import (
    CartError,
    InvalidQuantityError,
    InvalidStateTransitionError,
    MalformedCartError,
    StorefrontError,
    TabNotFoundError,
)

__all__ = [
    # Auth
    "AuthState",
    "AuthStatus",
    # Cart
    "CartEntry",
    "decode_cart",
    "encode_cart",
    # Exceptions
    "CartError",
    "InvalidQuantityError",
    "InvalidStateTransitionError",
    "MalformedCartError",
    "StorefrontError",
    "TabNotFoundError",
]
