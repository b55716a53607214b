"""Session manager.

``AuthContext`` is the single source of truth, for the lifetime of a client
process, for who is signed in and which role they hold. It mirrors the
identity provider's session, resolves the role from the account store, and
exposes the result as immutable ``AuthState`` snapshots.

Construct exactly one per process and pass it to whatever needs it.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Set

from core.exceptions import RoleLookupError
from schemas.user import AuthEvent, AuthSession, AuthState, Role
from utils.identity_provider import IdentityProvider, Subscription
from utils.role_resolver import RoleResolver

logger = logging.getLogger(__name__)

StateListener = Callable[[AuthState], None]


class AuthContext:
    """Reactive holder of ``{user, session, role, is_loading, is_authenticated}``."""

    def __init__(self, provider: IdentityProvider, role_resolver: RoleResolver):
        """Initialize AuthContext.

        Args:
            provider: Identity provider whose session is mirrored.
            role_resolver: Role lookup against the account store.
        """
        self._provider = provider
        self._resolver = role_resolver
        self._state = AuthState()
        self._listeners: List[StateListener] = []
        self._subscription: Optional[Subscription] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loaded: Optional[asyncio.Event] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def state(self) -> AuthState:
        return self._state

    def subscribe(self, listener: StateListener) -> None:
        """Call ``listener`` with every new state.

        Listeners may be invoked from inside an identity provider callback and
        must not call the provider synchronously.
        """
        self._listeners.append(listener)

    def unsubscribe(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _update(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        if self._loaded is not None:
            if self._state.is_loading:
                self._loaded.clear()
            else:
                self._loaded.set()
        for listener in list(self._listeners):
            listener(self._state)

    async def initialize(self) -> AuthState:
        """Subscribe to session changes, then load the existing session.

        Must be awaited once, inside the running event loop.
        """
        if self._subscription is not None:
            raise RuntimeError("AuthContext is already initialized")
        self._loop = asyncio.get_running_loop()
        self._loaded = asyncio.Event()

        # Subscribe first so no event between the two steps is lost
        self._subscription = self._provider.on_auth_state_change(self._on_auth_state_change)

        session = self._provider.get_session()
        user = session.user if session else None
        self._update(session=session, user=user, is_authenticated=user is not None)
        if user is not None:
            await self.resolve_role(user.id)
        else:
            self._update(is_loading=False)
        return self._state

    def close(self) -> None:
        """Unsubscribe from the provider and drop in-flight role lookups."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

    def _on_auth_state_change(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        user = session.user if session else None
        previous = self._state.user
        changes = {"session": session, "user": user, "is_authenticated": user is not None}
        if user is not None and (previous is None or previous.id != user.id):
            # A different user: the old role no longer applies
            changes.update(role=None, is_loading=True)
        self._update(**changes)

        if user is not None:
            # We are inside the provider's locked callback; querying from
            # here could re-enter the provider. Resolve on the next loop turn.
            self._loop.call_soon(self._spawn_role_resolution, user.id)
        else:
            self._update(role=None, is_loading=False)

    def _spawn_role_resolution(self, user_id: str) -> None:
        task = self._loop.create_task(self.resolve_role(user_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _is_session_user(self, user_id: str) -> bool:
        session = self._provider.get_session()
        return session is not None and session.user.id == user_id

    async def resolve_role(self, user_id: str) -> Optional[Role]:
        """Look up the role of ``user_id`` and publish it.

        A failed lookup is logged and resolves to ``role=None`` with loading
        finished, so callers never wait forever. A result for a user who is
        no longer signed in is dropped.
        """
        try:
            role = self._resolver.resolve_role(user_id)
        except RoleLookupError as e:
            logger.error("Error fetching role: %s", e)
            if self._is_session_user(user_id):
                self._update(role=None, is_loading=False)
            return None

        if not self._is_session_user(user_id):
            logger.debug("Discarding role for %s: session changed", user_id)
            return role

        self._update(role=role, is_loading=False, is_authenticated=True)
        return role

    async def refresh_role(self) -> Optional[Role]:
        """Re-run role resolution for the current user. No-op without one."""
        user = self._state.user
        if user is None:
            return None
        return await self.resolve_role(user.id)

    async def sign_out(self) -> None:
        """Sign out and reset local state without waiting for the provider event."""
        self._provider.sign_out()
        self._update(
            user=None, session=None, role=None, is_loading=False, is_authenticated=False
        )

    async def wait_until_loaded(self) -> AuthState:
        """Wait for scheduled role lookups and return the settled state."""
        if self._loaded is None:
            raise RuntimeError("AuthContext is not initialized")
        # Let call_soon callbacks spawn their tasks
        await asyncio.sleep(0)
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        await self._loaded.wait()
        return self._state
