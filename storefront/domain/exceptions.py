"""Domain exceptions.

Errors raised by the storefront core. None of them is allowed to reach the
rendering layer unhandled: async boundaries catch them and degrade to a
safe default state.
"""

from typing import Any


class StorefrontError(Exception):
    """Base class for all storefront exceptions."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize storefront error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(StorefrontError):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "AuthGate").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Cart Errors
# ============================================================================


class CartError(StorefrontError):
    """Base class for cart-related errors."""

    pass


class MalformedCartError(CartError):
    """Raised when stored cart data cannot be decoded."""

    def __init__(self, reason: str, raw: str | None = None) -> None:
        """Initialize malformed cart error.

        Args:
            reason: Why decoding failed.
            raw: The raw stored value (truncated in details).
        """
        super().__init__(
            f"Malformed cart data: {reason}",
            details={"reason": reason, "raw": (raw or "")[:200]},
        )


class InvalidQuantityError(CartError):
    """Raised when an invalid quantity is provided."""

    def __init__(self, quantity: Any, reason: str = "Quantity must be a positive integer") -> None:
        """Initialize invalid quantity error.

        Args:
            quantity: The invalid quantity value.
            reason: Explanation of why the quantity is invalid.
        """
        super().__init__(
            f"Invalid quantity {quantity!r}: {reason}",
            details={"quantity": quantity, "reason": reason},
        )


# ============================================================================
# Session Errors
# ============================================================================


class TabNotFoundError(StorefrontError):
    """Raised when a tab session does not exist (or was closed)."""

    def __init__(self, tab_id: str) -> None:
        super().__init__(
            f"Tab {tab_id} not found",
            details={"tab_id": tab_id},
        )
