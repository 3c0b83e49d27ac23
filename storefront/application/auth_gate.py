"""Auth gate.

Performs the one-shot session check for a tab and exposes the resulting
``AuthState`` to route guarding. The check never raises: every failure
resolves to ANONYMOUS and is logged.
"""

from typing import Any, Callable, Protocol

import structlog

from storefront.domain.auth import AuthState, AuthStatus, validate_auth_transition
from storefront.infrastructure.backend_client import APIResponse

logger = structlog.get_logger()

AuthListener = Callable[[AuthState], None]


class SessionClient(Protocol):
    """Cookie-credentialed session endpoints."""

    async def check_auth(self) -> APIResponse: ...

    async def logout(self) -> APIResponse: ...


def interpret_auth_response(response: APIResponse, owner_id: str = "") -> AuthState:
    """Map a ``GET /user/auth`` response onto an auth state.

    200 with a ``user`` object is AUTHENTICATED; everything else is
    ANONYMOUS. Only 401 is an expected anonymous answer; other outcomes
    are logged as errors.

    Args:
        response: Backend response.
        owner_id: Tab id for log context.

    Returns:
        The resolved state (never PENDING).
    """
    if response.success and response.status_code == 200:
        data = response.data
        user = data.get("user") if isinstance(data, dict) else None
        if isinstance(user, dict):
            return AuthState.authenticated(user)
        logger.error(
            "Auth check returned 200 without a user object",
            tab_id=owner_id,
        )
        return AuthState.anonymous()

    if response.status_code == 401:
        return AuthState.anonymous()

    if response.status_code is not None:
        logger.error(
            "Unexpected status code from auth check",
            tab_id=owner_id,
            status_code=response.status_code,
        )
    else:
        logger.error(
            "Error fetching auth status",
            tab_id=owner_id,
            error_code=response.error.error_code if response.error else None,
            error=response.error.message if response.error else None,
        )
    return AuthState.anonymous()


class AuthGate:
    """Three-state identity of one tab.

    Starts PENDING; ``check()`` resolves it exactly once. Afterwards only
    explicit ``sign_in``/``sign_out`` move it.
    """

    def __init__(self, client: SessionClient, owner_id: str = "") -> None:
        """Initialize gate in the PENDING state.

        Args:
            client: Session client carrying the tab's cookies.
            owner_id: Tab id, used in logs and errors.
        """
        self.client = client
        self.owner_id = owner_id
        self._state = AuthState.pending()
        self._checked = False
        self._listeners: list[AuthListener] = []

    @property
    def state(self) -> AuthState:
        return self._state

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener called after every transition."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, target: AuthState) -> None:
        validate_auth_transition(self.owner_id, self._state.status, target.status)
        self._state = target
        logger.info(
            "Auth state changed",
            tab_id=self.owner_id,
            status=target.status.value,
        )
        for listener in list(self._listeners):
            listener(target)

    async def check(self) -> AuthState:
        """Resolve the session, once.

        Later calls return the current state without contacting the backend.

        Returns:
            The resolved state.
        """
        if self._checked:
            return self._state
        self._checked = True

        try:
            response = await self.client.check_auth()
            resolved = interpret_auth_response(response, self.owner_id)
        except Exception as e:
            logger.error(
                "Error fetching auth status",
                tab_id=self.owner_id,
                error=str(e),
            )
            resolved = AuthState.anonymous()

        # sign_in may have resolved the gate while the check was in flight.
        if not self._state.status.is_resolved():
            self._transition(resolved)
        return self._state

    def sign_in(self, user: dict[str, Any]) -> AuthState:
        """Mark the tab authenticated after a successful login or registration."""
        self._checked = True
        if self._state.is_authenticated:
            self._state = AuthState.authenticated(user)
            return self._state
        self._transition(AuthState.authenticated(user))
        return self._state

    async def sign_out(self) -> AuthState:
        """End the session. Backend failures are logged and ignored."""
        self._checked = True
        try:
            response = await self.client.logout()
            if not response.success:
                logger.warning(
                    "Logout request failed",
                    tab_id=self.owner_id,
                    status_code=response.status_code,
                )
        except Exception as e:
            logger.error("Logout request raised", tab_id=self.owner_id, error=str(e))

        if self._state.status is not AuthStatus.ANONYMOUS:
            self._transition(AuthState.anonymous())
        return self._state
