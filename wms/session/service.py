"""
Session manager: turns auth sessions into the current actor.

    ANONYMOUS ──login()──► AUTHENTICATING ──profile found──► AUTHENTICATED
        ▲                        │                               │
        └──── failure ───────────┘◄──── logout() / SIGNED_OUT ───┘

The actor is written to `store.current_user`, which is what every sync
command and permission check reads.

API clients do not share that state: `issue_token` signs a caller in and
hands back a bearer token, and `actor_for_token` turns the token presented
on each request back into that caller's profile.
"""

from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from wms.config import Settings, settings as default_settings
from wms.remote import AuthError, AuthEvent, AuthProvider, AuthSession, AuthUser, RemoteError
from wms.remote.security import create_access_token, decode_access_token, verify_password
from wms.utils import Logger
from .schemas import NotificationSettings, SessionState, UserProfile

if TYPE_CHECKING:
    from wms.sync import DashboardStore, MutationResult

logger = Logger("wms.session")

LOCAL_ADMIN_ID = "local-admin"

SessionListener = Callable[[SessionState, Optional[UserProfile]], Awaitable[None]]


class SessionManager:
    def __init__(
        self,
        auth: AuthProvider,
        store: "DashboardStore",
        config: Settings | None = None,
    ):
        self.auth = auth
        self.store = store
        self.config = config or default_settings
        self.state = SessionState.ANONYMOUS
        self._listeners: list[SessionListener] = []
        self._unsubscribe = auth.on_auth_state_change(self._on_auth_event)

    # ── Accessors ────────────────────────────────────────────────

    @property
    def current_user(self) -> Optional[UserProfile]:
        return self.store.current_user

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED and self.store.current_user is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _set(self, state: SessionState, actor: Optional[UserProfile]) -> None:
        changed = state is not self.state or actor != self.store.current_user
        self.state = state
        self.store.current_user = actor
        if not changed:
            return
        for listener in list(self._listeners):
            try:
                await listener(state, actor)
            except Exception:
                logger.exception(f"Session listener failed on {state.value}")

    # ── Sign in ──────────────────────────────────────────────────

    async def login(self, identifier: str, password: str) -> bool:
        """Sign in by email or username. Returns True once an actor is resolved."""
        identifier = (identifier or "").strip()
        if not identifier or not password:
            return False

        await self._set(SessionState.AUTHENTICATING, None)

        if self._is_bootstrap_login(identifier, password):
            await self._bootstrap_admin()
            return True

        email = identifier
        if "@" not in identifier:
            email = await self._email_for_username(identifier)
            if email is None:
                await self._set(SessionState.ANONYMOUS, None)
                return False

        try:
            session = await self.auth.sign_in_with_password(email, password)
        except AuthError as exc:
            logger.info(f"Sign-in rejected for {identifier}: {exc.message}")
            await self._set(SessionState.ANONYMOUS, None)
            return False
        except RemoteError as exc:
            logger.warning(f"Sign-in for {identifier} failed: {exc.message}")
            await self._set(SessionState.ANONYMOUS, None)
            return False

        return await self._resolve_actor(session.user.id)

    async def _email_for_username(self, username: str) -> Optional[str]:
        try:
            profile = await self.store.remote.table("user_profiles").select_one({"username": username})
        except RemoteError as exc:
            logger.warning(f"Username lookup for {username} failed: {exc.message}")
            return None
        if not profile or not profile.get("email"):
            logger.info(f"No profile with an email for username {username}")
            return None
        return profile["email"]

    def _is_bootstrap_login(self, identifier: str, password: str) -> bool:
        cfg = self.config
        if not cfg.bootstrap_admin_enabled or not cfg.bootstrap_admin_password_hash:
            return False
        if identifier.lower() not in (
            cfg.bootstrap_admin_username.lower(),
            cfg.bootstrap_admin_email.lower(),
        ):
            return False
        return verify_password(password, cfg.bootstrap_admin_password_hash)

    def _bootstrap_actor(self) -> UserProfile:
        cfg = self.config
        return UserProfile(
            id=LOCAL_ADMIN_ID,
            name="Local Administrator",
            username=cfg.bootstrap_admin_username,
            email=cfg.bootstrap_admin_email,
            role="ADMIN",
            landing_page="DASHBOARD",
        )

    async def _bootstrap_admin(self) -> None:
        actor = self._bootstrap_actor()
        if LOCAL_ADMIN_ID not in self.store.users:
            self.store.users.append(actor.model_dump(mode="json"))
        await self._set(SessionState.AUTHENTICATED, actor)
        await self._log_bootstrap(actor)

    async def _log_bootstrap(self, actor: UserProfile) -> None:
        logger.warning(f"Local administrator '{actor.username}' signed in without the auth service")
        await self.store.audit.log(
            module="SESSION",
            action="bootstrap_login",
            user_id=actor.id,
            user_email=actor.email,
            user_role=actor.role,
            description="Local administrator signed in",
        )

    async def _load_profile(self, user_id: str) -> Optional[dict]:
        try:
            return await self.store.remote.table("user_profiles").select_one({"id": user_id})
        except RemoteError as exc:
            logger.error(f"Could not load profile {user_id}: {exc.message}")
            return None

    async def _resolve_actor(self, user_id: str) -> bool:
        row = await self._load_profile(user_id)
        if not row:
            logger.warning(f"Auth user {user_id} has no usable profile")
            await self._set(SessionState.ANONYMOUS, None)
            return False

        actor = UserProfile.model_validate(row)
        await self._set(SessionState.AUTHENTICATED, actor)
        return True

    async def restore(self) -> bool:
        """Re-resolve the actor from an existing auth session, if any."""
        try:
            session = await self.auth.get_session()
        except RemoteError as exc:
            logger.warning(f"Could not restore session: {exc.message}")
            return False
        if session is None:
            return False
        return await self._resolve_actor(session.user.id)

    async def _on_auth_event(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        if event is AuthEvent.SIGNED_OUT or session is None:
            if self.current_user is None or self.current_user.id != LOCAL_ADMIN_ID:
                await self._set(SessionState.ANONYMOUS, None)
            return
        if event is AuthEvent.SIGNED_IN and self.state is SessionState.AUTHENTICATING:
            # login() resolves the actor itself
            return
        await self._resolve_actor(session.user.id)

    # ── Sign out ─────────────────────────────────────────────────

    async def logout(self) -> None:
        try:
            if self.current_user is None or self.current_user.id != LOCAL_ADMIN_ID:
                await self.auth.sign_out()
        except RemoteError as exc:
            logger.warning(f"Sign-out did not reach the auth service: {exc.message}")
        finally:
            await self._set(SessionState.ANONYMOUS, None)

    def close(self) -> None:
        self._unsubscribe()

    # ── Bearer tokens ────────────────────────────────────────────

    async def issue_token(self, identifier: str, password: str) -> Optional[tuple[AuthSession, UserProfile]]:
        """
        Sign in one API client and return its token with the resolved profile.

        Neither `state` nor `store.current_user` changes, and a failed attempt
        affects nobody else.
        """
        identifier = (identifier or "").strip()
        if not identifier or not password:
            return None

        if self._is_bootstrap_login(identifier, password):
            actor = self._bootstrap_actor()
            token, expires_at = create_access_token({"sub": actor.id, "email": actor.email, "local": True})
            await self._log_bootstrap(actor)
            issued = AuthSession(
                access_token=token,
                expires_at=expires_at,
                user=AuthUser(id=actor.id, email=actor.email),
            )
            return issued, actor

        email = identifier
        if "@" not in identifier:
            email = await self._email_for_username(identifier)
            if email is None:
                return None

        try:
            issued = await self.auth.issue_token(email, password)
        except AuthError as exc:
            logger.info(f"Sign-in rejected for {identifier}: {exc.message}")
            return None
        except RemoteError as exc:
            logger.warning(f"Sign-in for {identifier} failed: {exc.message}")
            return None

        actor = await self._profile_for(issued.user.id)
        if actor is None:
            return None
        return issued, actor

    async def actor_for_token(self, token: str) -> Optional[UserProfile]:
        """Profile of the caller presenting `token`; None when the token is not valid."""
        actor = self._local_admin_for(token)
        if actor is not None:
            return actor
        try:
            user = await self.auth.verify_token(token)
        except RemoteError as exc:
            logger.warning(f"Token check failed: {exc.message}")
            return None
        if user is None:
            return None
        return await self._profile_for(user.id)

    async def revoke_token(self, token: str) -> None:
        try:
            await self.auth.revoke_token(token)
        except RemoteError as exc:
            logger.warning(f"Token revocation did not reach the auth service: {exc.message}")

    def _local_admin_for(self, token: str) -> Optional[UserProfile]:
        cfg = self.config
        if not cfg.bootstrap_admin_enabled or not cfg.bootstrap_admin_password_hash:
            return None
        try:
            payload = decode_access_token(token)
        except AuthError:
            return None
        if payload.get("sub") != LOCAL_ADMIN_ID or not payload.get("local"):
            return None
        return self._bootstrap_actor()

    async def _profile_for(self, user_id: str) -> Optional[UserProfile]:
        row = self.store.users.get(user_id) or await self._load_profile(user_id)
        if not row:
            logger.warning(f"Auth user {user_id} has no usable profile")
            return None
        return UserProfile.model_validate(row)

    # ── Account maintenance ──────────────────────────────────────

    async def reset_password(self, user_id: str) -> bool:
        """Send a password reset to the email of profile `user_id`."""
        profile = self.store.users.get(user_id)
        if profile is None:
            try:
                profile = await self.store.remote.table("user_profiles").select_one({"id": user_id})
            except RemoteError as exc:
                logger.error(f"Could not load profile {user_id}: {exc.message}")
                return False
        if not profile or not profile.get("email"):
            logger.info(f"Password reset skipped: user {user_id} has no email")
            return False
        try:
            await self.auth.reset_password_for_email(profile["email"])
        except RemoteError as exc:
            logger.error(f"Password reset for {user_id} failed: {exc.message}")
            return False
        return True

    async def change_password(self, new_password: str, actor: Optional[UserProfile] = None) -> bool:
        """Change the password of `actor`, or of the signed-in user when omitted."""
        if actor is None:
            if not self.is_authenticated:
                return False
            user_id = None
        elif actor.id == LOCAL_ADMIN_ID:
            return False
        else:
            user_id = actor.id
        try:
            await self.auth.update_user(password=new_password, user_id=user_id)
        except RemoteError as exc:
            logger.error(f"Password change failed: {exc.message}")
            return False
        return True

    async def update_notification_settings(
        self, notification_settings: NotificationSettings | dict
    ) -> "MutationResult":
        return await self.store.update_notification_settings(notification_settings)
