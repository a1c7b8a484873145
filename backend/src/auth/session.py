from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests
from dotenv import load_dotenv

AUTH_SIGNUP_PATH = "/auth/v1/signup"
AUTH_TOKEN_PATH = "/auth/v1/token?grant_type=password"
AUTH_LOGOUT_PATH = "/auth/v1/logout"

AUTH_UNAVAILABLE_MESSAGE = (
    "Cannot connect to authentication service. "
    "Your Supabase project may be paused or inactive."
)

load_dotenv()

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when authentication with Supabase fails."""


class AuthServiceUnavailableError(AuthError):
    """Raised when the Supabase auth service cannot be reached."""

    def __init__(self, message: str = AUTH_UNAVAILABLE_MESSAGE) -> None:
        super().__init__(message)


@dataclass
class Session:
    """Represents an authenticated Supabase session."""

    user_id: str
    email: str
    access_token: str
    refresh_token: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> Optional[str]:
        return self.metadata.get("full_name")


class SupabaseAuth:
    """Thin wrapper around Supabase REST auth endpoints."""

    def __init__(self, *, url: Optional[str] = None, anon_key: Optional[str] = None, timeout: float = 20):
        self.base_url = url or os.getenv("SUPABASE_URL")
        self.anon_key = anon_key or os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY")
        self.timeout = timeout
        if not self.base_url or not self.anon_key:
            raise AuthError("Supabase credentials missing. Set SUPABASE_URL and SUPABASE_ANON_KEY.")

    def signup(self, email: str, password: str, user_data: Optional[Dict[str, Any]] = None) -> Session:
        """Create a new user account and return a valid session."""
        self._post(AUTH_SIGNUP_PATH, {"email": email, "password": password, "data": user_data or {}})
        # Supabase may not auto-return a session after signup, so perform a login.
        return self.login(email, password)

    def login(self, email: str, password: str) -> Session:
        """Authenticate a user and return a session."""
        payload = self._post(AUTH_TOKEN_PATH, {"email": email, "password": password})
        access_token = payload.get("access_token")
        user = payload.get("user") or {}
        user_id = user.get("id")
        if not access_token or not user_id:
            raise AuthError("Incomplete response from Supabase during login.")
        return Session(
            user_id=user_id,
            email=user.get("email", email),
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            metadata=user.get("user_metadata") or {},
        )

    def logout(self, access_token: str) -> None:
        self._post(AUTH_LOGOUT_PATH, {}, access_token=access_token)

    def _post(self, path: str, data: Dict[str, Any], *, access_token: Optional[str] = None) -> Dict[str, Any]:
        headers = {
            "apikey": self.anon_key,
            "Content-Type": "application/json",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        try:
            response = requests.post(
                f"{self.base_url}{path}",
                headers=headers,
                data=json.dumps(data),
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise AuthServiceUnavailableError() from exc
        if response.status_code >= 400:
            try:
                details = response.json()
            except ValueError:
                details = response.text
            raise AuthError(f"Supabase error {response.status_code}: {details}")
        if not response.text:
            return {}
        return response.json()


AuthChangeHandler = Callable[[Optional[Session]], None]


class AuthSessionProvider:
    """Holds the signed-in user and tells subscribers when it changes.

    Handlers run synchronously on the thread that changed the session, so
    they must not block; anything slow belongs in a task they spawn.
    """

    def __init__(self, auth: Optional[SupabaseAuth] = None, session: Optional[Session] = None) -> None:
        self._auth = auth
        self._session = session
        self._handlers: List[AuthChangeHandler] = []

    @property
    def auth(self) -> SupabaseAuth:
        if self._auth is None:
            self._auth = SupabaseAuth()
        return self._auth

    def current_user(self) -> Optional[Session]:
        return self._session

    def on_auth_change(self, handler: AuthChangeHandler) -> Callable[[], None]:
        """Subscribe ``handler``; the returned callable unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def sign_in(self, email: str, password: str) -> Session:
        return self._set_session(self.auth.login(email, password))

    def sign_up(self, email: str, password: str, user_data: Optional[Dict[str, Any]] = None) -> Session:
        return self._set_session(self.auth.signup(email, password, user_data))

    def sign_out(self) -> None:
        session = self._session
        if session is not None and session.access_token:
            self.auth.logout(session.access_token)
        self._set_session(None)

    def _set_session(self, session: Optional[Session]) -> Optional[Session]:
        self._session = session
        for handler in list(self._handlers):
            handler(session)
        return session
