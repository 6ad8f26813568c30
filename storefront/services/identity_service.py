# storefront/services/identity_service.py
import threading
import time
from typing import Any, Callable, Dict, List

from storefront.domain.errors import AuthRequiredError, MalformedResponseError, StorefrontError
from storefront.domain.schemas import Identity, UserProfile
from storefront.services.api_client import StorefrontAPI
from storefront.utils.logging import get_logger, token_preview
from storefront.utils.settings import PROFILE_REFRESH_SECONDS
from storefront.utils.single_flight import SingleFlight

logger = get_logger(__name__)

_PROFILE_FLIGHT = "profile"


def _clean_token(token: str) -> str:
    token = token.strip()
    return token[7:] if token.startswith("Bearer ") else token


class IdentityService:
    """
    Holds the current identity: token first, user profile once fetched.

    - seeded from the token repo at startup
    - profile refresh is single-flight: concurrent callers share one request
    - cleared on logout and on any 401 (registered as an API auth-failure hook)
    """

    def __init__(
        self,
        api: StorefrontAPI,
        token_repo,
        refresh_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api = api
        self.token_repo = token_repo
        self.refresh_interval = PROFILE_REFRESH_SECONDS if refresh_interval is None else refresh_interval
        self.clock = clock

        self._lock = threading.Lock()
        self._flight = SingleFlight()
        self._listeners: List[Callable[[], None]] = []
        self._last_refresh: float | None = None

        token = token_repo.load()
        self._identity = Identity(token=token)
        logger.info(f"Identity seeded from token store: {token_preview(token)}")

    # query
    def current(self) -> Identity:
        with self._lock:
            return self._identity.model_copy()

    def get_token(self) -> str | None:
        with self._lock:
            return self._identity.token

    @property
    def is_authenticated(self) -> bool:
        return self.current().is_authenticated

    @property
    def is_usable(self) -> bool:
        return self.current().is_usable

    def on_clear(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    # =====================================================
    # LOGIN / REGISTER / LOGOUT
    # =====================================================
    def login(self, credentials: Dict[str, Any]) -> Identity:
        body, headers = self.api.login(credentials)
        return self._start_session(body, headers, "Authentication failed: No token received")

    def register(self, user_data: Dict[str, Any]) -> Identity:
        body, headers = self.api.register(user_data)
        return self._start_session(body, headers, "Registration failed: No token received")

    def _start_session(self, body: Any, headers: Dict[str, str], missing_token: str) -> Identity:
        if not isinstance(body, dict):
            raise MalformedResponseError("auth response is not an object", body)

        header_token = next((v for k, v in headers.items() if k.lower() == "authorization"), None)
        token = body.get("token") or body.get("accessToken") or header_token
        if not token or not isinstance(token, str):
            raise AuthRequiredError(missing_token, user_message=missing_token)

        token = _clean_token(token)
        self.token_repo.save(token)

        raw_user = body.get("user") if isinstance(body.get("user"), dict) else body
        user = UserProfile.from_payload(raw_user)

        with self._lock:
            self._identity = Identity(token=token, user=user if user.stable_id else None)

        logger.info(f"Session started, token {token_preview(token)}")

        # profile fetch may fail without failing the login
        try:
            self.refresh()
        except StorefrontError as e:
            logger.warning(f"Profile fetch after login failed: {e}")

        return self.current()

    def logout(self) -> None:
        try:
            self.api.logout()
        except StorefrontError as e:
            # server side logout is best effort, local state is cleared anyway
            logger.warning(f"Logout request failed: {e}")
        finally:
            self.clear()

    def clear(self) -> None:
        with self._lock:
            self._identity = Identity()
            self._last_refresh = None

        try:
            self.token_repo.delete()
        except Exception as e:
            logger.warning(f"Failed to remove persisted token: {e}")

        for callback in list(self._listeners):
            callback()

        logger.info("Identity cleared")

    def handle_auth_failure(self) -> None:
        logger.warning("Authentication error: token invalid or expired, clearing identity")
        self.clear()

    # =====================================================
    # PROFILE REFRESH
    # =====================================================
    def refresh(self) -> Identity:
        if not self.get_token():
            raise AuthRequiredError("No authentication token available")
        return self._flight.do(_PROFILE_FLIGHT, self._fetch_profile)

    def _fetch_profile(self, auth_hooks: bool = True) -> Identity:
        token = self.get_token()
        logger.info("Refreshing user profile...")

        data = self.api.get_profile(auth_hooks=auth_hooks)
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            data = data["user"]
        if not isinstance(data, dict):
            raise MalformedResponseError("Invalid user profile data received from server", data)

        profile = UserProfile.from_payload(data)

        with self._lock:
            if self._identity.token != token:
                # logged out (or in again) while the request was running
                logger.info("Identity changed during profile refresh, dropping result")
                return self._identity.model_copy()
            self._identity = Identity(token=token, user=profile)
            self._last_refresh = self.clock()

        logger.info(f"User profile refreshed, user id: {profile.stable_id}")
        return self.current()

    def ensure_usable(self) -> bool:
        """
        True when identity has a resolvable user id, refreshing the profile at
        most once. Joins a refresh that is already in flight.
        """
        identity = self.current()
        if identity.is_usable:
            return True
        if not identity.is_authenticated:
            logger.warning("No token, identity cannot be refreshed")
            return False

        logger.info("Token exists but user data is missing, refreshing profile")
        try:
            self.refresh()
        except StorefrontError as e:
            logger.error(f"Identity refresh failed: {e}")
            return False

        return self.current().is_usable

    def refresh_if_stale(self) -> Identity:
        if not self.get_token():
            return self.current()

        with self._lock:
            last = self._last_refresh
        if last is not None and self.clock() - last < self.refresh_interval:
            return self.current()

        try:
            return self.refresh()
        except StorefrontError as e:
            logger.warning(f"Periodic profile refresh failed: {e}")
            return self.current()

    def validate_token(self) -> bool:
        """
        Checks the token against the server. On a 401 tries one token refresh
        before giving up and clearing identity.
        """
        if not self.get_token():
            logger.warning("No token to validate")
            return False

        try:
            self._fetch_profile(auth_hooks=False)
            return True
        except AuthRequiredError:
            logger.warning("Token is invalid or expired, trying refresh-token")
        except StorefrontError as e:
            logger.error(f"Token validation error: {e}")
            return False

        try:
            data = self.api.refresh_token()
        except StorefrontError as e:
            logger.error(f"Failed to refresh token: {e}")
            data = None

        new_token = data.get("token") if isinstance(data, dict) else None
        if not new_token or not isinstance(new_token, str):
            self.clear()
            return False

        new_token = _clean_token(new_token)
        self.token_repo.save(new_token)
        with self._lock:
            self._identity = Identity(token=new_token, user=self._identity.user)
        logger.info("Token refreshed successfully")
        return True
