import logging
from typing import Callable, List, Optional

from .errors import IdentityError, IdentityErrorKind
from .normalizers import EMAIL_PATTERN
from ..infra.identity_client import IdentityClient, IdentityUser

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

FRIENDLY_MESSAGES = {
    IdentityErrorKind.ACCOUNT_EXISTS: "An account with this email already exists. Try signing in instead.",
}

SessionListener = Callable[[Optional[IdentityUser]], None]


class AuthSession:
    """
    Process-scoped sign-in state.

    Starts empty with `loading=True`; `initialize()` asks the provider
    for an existing session once. Listeners registered with
    `on_session_change` are called whenever the current user changes.
    """

    def __init__(self, client: IdentityClient) -> None:
        self._client = client
        self._user: Optional[IdentityUser] = None
        self._loading = True
        self._listeners: List[SessionListener] = []

    @property
    def current_user(self) -> Optional[IdentityUser]:
        return self._user

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def client(self) -> IdentityClient:
        return self._client

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """
        Registers `callback(user)`.

        Returns:
            A function that removes the callback again
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_user(self, user: Optional[IdentityUser]) -> None:
        if user == self._user:
            return
        self._user = user
        logger.info(f"Session changed: user={user.email if user else None}")
        for listener in list(self._listeners):
            listener(user)

    async def initialize(self) -> Optional[IdentityUser]:
        try:
            self._set_user(await self._client.get_session())
        finally:
            self._loading = False
        return self._user

    @staticmethod
    def _validate_credentials(email: str, password: str) -> None:
        if not EMAIL_PATTERN.match(email or ""):
            raise IdentityError(
                IdentityErrorKind.INVALID_INPUT, "Please enter a valid email address"
            )
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise IdentityError(
                IdentityErrorKind.INVALID_INPUT,
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            )

    @staticmethod
    def _friendly(error: IdentityError, fallback: str) -> IdentityError:
        message = FRIENDLY_MESSAGES.get(error.error_kind) or error.message or fallback
        return IdentityError(error.error_kind, message)

    async def sign_in(self, email: str, password: str) -> IdentityUser:
        self._validate_credentials(email, password)
        try:
            user = await self._client.sign_in(email, password)
        except IdentityError as e:
            logger.warning(f"Sign-in failed: email={email}, kind={e.error_kind.value}")
            raise self._friendly(e, "Sign in failed") from e
        self._set_user(user)
        return user

    async def sign_up(self, email: str, password: str) -> IdentityUser:
        self._validate_credentials(email, password)
        try:
            user = await self._client.sign_up(email, password)
        except IdentityError as e:
            logger.warning(f"Sign-up failed: email={email}, kind={e.error_kind.value}")
            raise self._friendly(e, "Sign up failed") from e
        self._set_user(user)
        return user

    async def sign_out(self) -> None:
        """
        Clears the local user even when the provider call fails.
        """
        try:
            await self._client.sign_out()
        except IdentityError as e:
            logger.error(f"Provider sign-out failed: kind={e.error_kind.value}, error={e.message}")
            raise
        finally:
            self._set_user(None)
