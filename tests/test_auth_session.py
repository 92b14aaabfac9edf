import pytest

from eventflow.core.auth_session import AuthSession
from eventflow.core.errors import IdentityError, IdentityErrorKind
from eventflow.infra.identity_client import (
    IdentityClient,
    InMemoryIdentityClient,
    map_provider_error,
)

pytestmark = pytest.mark.anyio


class FailingSignOutClient(InMemoryIdentityClient):
    async def sign_out(self):
        raise IdentityError(IdentityErrorKind.PROVIDER_UNAVAILABLE, "down")


class CountingClient(InMemoryIdentityClient):
    def __init__(self):
        super().__init__()
        self.sign_in_calls = 0

    async def sign_in(self, email, password):
        self.sign_in_calls += 1
        raise IdentityError(IdentityErrorKind.PROVIDER_UNAVAILABLE, "down")


@pytest.fixture
def session():
    return AuthSession(InMemoryIdentityClient())


class TestAuthSession:
    async def test_initialize_restores_nothing_by_default(self, session):
        assert session.loading is True
        assert await session.initialize() is None
        assert session.loading is False

    async def test_sign_up_then_sign_in(self, session):
        user = await session.sign_up("admin@x.com", "password123")
        assert session.current_user == user
        await session.sign_out()
        assert session.current_user is None
        assert (await session.sign_in("ADMIN@x.com", "password123")).email == "admin@x.com"

    @pytest.mark.parametrize("email,password", [
        ("not-an-email", "password123"),
        ("a@b", "password123"),
        ("admin@x.com", "short"),
    ])
    async def test_local_validation(self, session, email, password):
        with pytest.raises(IdentityError) as exc:
            await session.sign_in(email, password)
        assert exc.value.error_kind == IdentityErrorKind.INVALID_INPUT

    async def test_existing_account_gets_friendly_message(self, session):
        await session.sign_up("admin@x.com", "password123")
        with pytest.raises(IdentityError) as exc:
            await session.sign_up("admin@x.com", "password456")
        assert exc.value.error_kind == IdentityErrorKind.ACCOUNT_EXISTS
        assert exc.value.message == "An account with this email already exists. Try signing in instead."

    async def test_wrong_password(self, session):
        await session.sign_up("admin@x.com", "password123")
        await session.sign_out()
        with pytest.raises(IdentityError) as exc:
            await session.sign_in("admin@x.com", "password999")
        assert exc.value.error_kind == IdentityErrorKind.INVALID_CREDENTIALS
        assert session.current_user is None

    async def test_listeners_follow_session_changes(self, session):
        seen = []
        unsubscribe = session.on_session_change(seen.append)
        user = await session.sign_up("admin@x.com", "password123")
        await session.sign_out()
        unsubscribe()
        await session.sign_in("admin@x.com", "password123")
        assert seen == [user, None]

    async def test_sign_out_clears_user_even_on_failure(self):
        session = AuthSession(FailingSignOutClient())
        await session.sign_up("admin@x.com", "password123")
        with pytest.raises(IdentityError):
            await session.sign_out()
        assert session.current_user is None

    async def test_failures_are_not_retried(self):
        client = CountingClient()
        session = AuthSession(client)
        with pytest.raises(IdentityError) as exc:
            await session.sign_in("admin@x.com", "password123")
        assert exc.value.error_kind == IdentityErrorKind.PROVIDER_UNAVAILABLE
        assert client.sign_in_calls == 1

    async def test_in_memory_client_is_an_identity_client(self):
        assert isinstance(InMemoryIdentityClient(), IdentityClient)


class TestProviderErrorMapping:
    def test_maps_structured_codes(self):
        error = map_provider_error(422, {"error_code": "user_already_exists", "msg": "User already registered"})
        assert error.error_kind == IdentityErrorKind.ACCOUNT_EXISTS
        assert error.message == "User already registered"

    def test_password_grant_failure(self):
        error = map_provider_error(400, {"error": "invalid_grant", "error_description": "Invalid login credentials"})
        assert error.error_kind == IdentityErrorKind.INVALID_CREDENTIALS

    def test_message_text_is_not_inspected(self):
        error = map_provider_error(400, {"msg": "Email already in use somewhere"})
        assert error.error_kind == IdentityErrorKind.UNKNOWN

    def test_server_errors_mean_unavailable(self):
        error = map_provider_error(503, {})
        assert error.error_kind == IdentityErrorKind.PROVIDER_UNAVAILABLE
        assert "503" in error.message
