"""Authentication state.

A tab's identity is exactly one of three states:

    PENDING
      │ check: 200 + user        │ check: 401, other status, failure
      ▼                          ▼
    AUTHENTICATED ◄── sign_in ── ANONYMOUS
          │                          ▲
          └──────── sign_out ────────┘

PENDING is only ever left, never re-entered.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from storefront.domain.exceptions import InvalidStateTransitionError


class AuthStatus(str, Enum):
    """Authentication lifecycle states."""

    PENDING = "pending"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"

    def can_transition_to(self, target: "AuthStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _AUTH_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["AuthStatus"]:
        """Get list of valid target states."""
        return sorted(_AUTH_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_resolved(self) -> bool:
        """Whether the session check has completed."""
        return self != AuthStatus.PENDING


_AUTH_TRANSITIONS: dict[AuthStatus, set[AuthStatus]] = {
    AuthStatus.PENDING: {AuthStatus.AUTHENTICATED, AuthStatus.ANONYMOUS},
    AuthStatus.AUTHENTICATED: {AuthStatus.ANONYMOUS},
    AuthStatus.ANONYMOUS: {AuthStatus.AUTHENTICATED},
}


@dataclass(frozen=True)
class AuthState:
    """Tagged authentication state.

    ``user`` is present if and only if the status is AUTHENTICATED; any
    other combination is rejected at construction.

    Attributes:
        status: Current status.
        user: The backend user document when authenticated.
    """

    status: AuthStatus
    user: dict[str, Any] | None = field(default=None, compare=True, hash=False)

    def __post_init__(self) -> None:
        if self.status is AuthStatus.AUTHENTICATED:
            if not isinstance(self.user, dict):
                raise ValueError("Authenticated state requires a user object")
        elif self.user is not None:
            raise ValueError(f"{self.status.value} state cannot carry a user")

    @classmethod
    def pending(cls) -> "AuthState":
        return cls(status=AuthStatus.PENDING)

    @classmethod
    def authenticated(cls, user: dict[str, Any]) -> "AuthState":
        return cls(status=AuthStatus.AUTHENTICATED, user=dict(user))

    @classmethod
    def anonymous(cls) -> "AuthState":
        return cls(status=AuthStatus.ANONYMOUS)

    @property
    def is_pending(self) -> bool:
        return self.status is AuthStatus.PENDING

    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED

    @property
    def is_anonymous(self) -> bool:
        return self.status is AuthStatus.ANONYMOUS

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status.value, "user": self.user}


def validate_auth_transition(
    owner_id: str,
    current_status: AuthStatus,
    target_status: AuthStatus,
) -> None:
    """Validate and raise if an auth state transition is invalid.

    Args:
        owner_id: Identifier of the gate (tab) for the error message.
        current_status: Current status.
        target_status: Target status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="AuthGate",
            entity_id=owner_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
