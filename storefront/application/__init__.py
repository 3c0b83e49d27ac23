"""Application layer module.

Stateful services owned by the storefront root: the auth gate, the cart
synchronizer and the state container itself.
"""

from storefront.application.auth_gate import AuthGate
from storefront.application.cart_sync import CartSynchronizer
from storefront.application.storefront import Storefront, TabSession

__all__ = [
    "AuthGate",
    "CartSynchronizer",
    "Storefront",
    "TabSession",
]
