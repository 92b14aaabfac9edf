import abc
import asyncio
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import aiohttp

from ..core.errors import IdentityError, IdentityErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityUser:
    id: str
    email: str


class IdentityClient(abc.ABC):
    """
    Async capability backed by an external identity provider.
    Failures raise IdentityError and are never retried here.
    """

    @abc.abstractmethod
    async def get_session(self) -> Optional[IdentityUser]:
        ...

    @abc.abstractmethod
    async def sign_in(self, email: str, password: str) -> IdentityUser:
        ...

    @abc.abstractmethod
    async def sign_up(self, email: str, password: str) -> IdentityUser:
        ...

    @abc.abstractmethod
    async def sign_out(self) -> None:
        ...

    async def close(self) -> None:
        pass


class InMemoryIdentityClient(IdentityClient):
    """
    Provider kept in process memory, for development and tests.
    Passwords are stored as salted SHA-256 digests.
    """

    def __init__(self) -> None:
        self._users: Dict[str, Tuple[IdentityUser, str, str]] = {}
        self._current: Optional[IdentityUser] = None

    @staticmethod
    def _digest(salt: str, password: str) -> str:
        return hashlib.sha256(f"{salt}{password}".encode("utf-8")).hexdigest()

    async def get_session(self) -> Optional[IdentityUser]:
        return self._current

    async def sign_up(self, email: str, password: str) -> IdentityUser:
        key = email.strip().lower()
        if key in self._users:
            raise IdentityError(IdentityErrorKind.ACCOUNT_EXISTS, "User already registered")
        user = IdentityUser(id=secrets.token_hex(16), email=key)
        salt = secrets.token_hex(8)
        self._users[key] = (user, salt, self._digest(salt, password))
        self._current = user
        return user

    async def sign_in(self, email: str, password: str) -> IdentityUser:
        entry = self._users.get(email.strip().lower())
        if entry is None or not hmac.compare_digest(entry[2], self._digest(entry[1], password)):
            raise IdentityError(IdentityErrorKind.INVALID_CREDENTIALS, "Invalid login credentials")
        self._current = entry[0]
        return entry[0]

    async def sign_out(self) -> None:
        self._current = None


# Provider error codes -> our kinds; message text is never inspected
ERROR_CODE_KINDS = {
    "user_already_exists": IdentityErrorKind.ACCOUNT_EXISTS,
    "email_exists": IdentityErrorKind.ACCOUNT_EXISTS,
    "invalid_credentials": IdentityErrorKind.INVALID_CREDENTIALS,
    "invalid_grant": IdentityErrorKind.INVALID_CREDENTIALS,
    "weak_password": IdentityErrorKind.WEAK_PASSWORD,
    "email_address_invalid": IdentityErrorKind.INVALID_INPUT,
    "validation_failed": IdentityErrorKind.INVALID_INPUT,
}


def map_provider_error(status: int, body: Dict[str, Any]) -> IdentityError:
    """
    Builds an IdentityError from a GoTrue error response.

    Args:
        status: HTTP status code
        body: Decoded JSON body (may be empty)
    """
    code = body.get("error_code") or body.get("error") or ""
    message = (
        body.get("msg")
        or body.get("error_description")
        or body.get("message")
        or f"Identity provider returned HTTP {status}"
    )
    kind = ERROR_CODE_KINDS.get(code)
    if kind is None:
        if status >= 500:
            kind = IdentityErrorKind.PROVIDER_UNAVAILABLE
        elif status in (401, 403):
            kind = IdentityErrorKind.INVALID_CREDENTIALS
        else:
            kind = IdentityErrorKind.UNKNOWN
    return IdentityError(kind, message)


class SupabaseIdentityClient(IdentityClient):
    """
    Supabase Auth (GoTrue) over its REST API.

    Holds the access token of the signed-in user for this process.
    """

    def __init__(self, base_url: str, anon_key: str, timeout_s: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._http_session: Optional[aiohttp.ClientSession] = None
        self._access_token: Optional[str] = None

    def _session(self) -> aiohttp.ClientSession:
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession(timeout=self._timeout)
        return self._http_session

    def _headers(self, bearer: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {bearer or self._anon_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        bearer: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with self._session().request(
                method, url, json=json, headers=self._headers(bearer)
            ) as resp:
                body: Dict[str, Any] = {}
                if resp.content_type == "application/json":
                    body = await resp.json()
                if resp.status >= 400:
                    error = map_provider_error(resp.status, body or {})
                    logger.warning(
                        f"Identity provider error: path={path}, status={resp.status}, "
                        f"kind={error.error_kind.value}"
                    )
                    raise error
                return body or {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(
                f"Identity provider unreachable: path={path}, "
                f"error={type(e).__name__}: {e}"
            )
            raise IdentityError(
                IdentityErrorKind.PROVIDER_UNAVAILABLE,
                "Identity provider unavailable. Please try again.",
            ) from e

    @staticmethod
    def _user_from(payload: Dict[str, Any]) -> IdentityUser:
        user = payload.get("user") or payload
        return IdentityUser(id=str(user.get("id", "")), email=str(user.get("email", "")))

    async def get_session(self) -> Optional[IdentityUser]:
        if not self._access_token:
            return None
        try:
            payload = await self._request("GET", "/auth/v1/user", bearer=self._access_token)
        except IdentityError as e:
            if e.error_kind == IdentityErrorKind.INVALID_CREDENTIALS:
                self._access_token = None
                return None
            raise
        return self._user_from(payload)

    async def sign_in(self, email: str, password: str) -> IdentityUser:
        payload = await self._request(
            "POST",
            "/auth/v1/token?grant_type=password",
            json={"email": email, "password": password},
        )
        self._access_token = payload.get("access_token")
        return self._user_from(payload)

    async def sign_up(self, email: str, password: str) -> IdentityUser:
        payload = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password},
        )
        # Projects with auto-confirm return a session; otherwise only the user
        self._access_token = payload.get("access_token")
        return self._user_from(payload)

    async def sign_out(self) -> None:
        token, self._access_token = self._access_token, None
        if token:
            await self._request("POST", "/auth/v1/logout", bearer=token)

    async def close(self) -> None:
        if self._http_session is not None and not self._http_session.closed:
            await self._http_session.close()
