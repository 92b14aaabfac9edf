import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional
from uuid import uuid4
from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import BaseModel, Field
from ..config import AppConfig
from ..core.auth_session import AuthSession
from ..core.engine import EventFlowEngine
from ..core.errors import (
    DuplicateError,
    EventFlowError,
    IdentityError,
    IdentityErrorKind,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from ..core.models import Event, Participant, entry_pass_payload
from ..infra.entry_pass import render_entry_pass_png
from ..infra.identity_client import (
    IdentityClient,
    InMemoryIdentityClient,
    SupabaseIdentityClient,
)

logger = logging.getLogger(__name__)


class FormFieldIn(BaseModel):
    id: Optional[str] = None
    label: str = ""
    type: str = "text"
    required: bool = False
    options: Optional[List[str]] = None
    role: Optional[str] = None  # name, email, team_name or none; inferred when absent


class FormFieldOut(BaseModel):
    id: str
    label: str
    type: str
    required: bool
    role: str
    options: Optional[List[str]] = None


class EventCreate(BaseModel):
    name: str = ""
    description: str = ""
    date: str = ""
    location: str = ""
    event_type: str = "individual"
    max_team_size: Optional[int] = None
    form_fields: List[FormFieldIn] = Field(default_factory=list)


class EventPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    event_type: Optional[str] = None
    max_team_size: Optional[int] = None
    form_fields: Optional[List[FormFieldIn]] = None


class EventOut(BaseModel):
    id: str
    name: str
    description: str
    date: str
    location: str
    event_type: str
    max_team_size: Optional[int] = None
    form_fields: List[FormFieldOut]
    created_at: str


class ParticipantOut(BaseModel):
    id: str
    event_id: str
    entry_uuid: str
    name: str
    email: str
    team_name: Optional[str] = None
    form_data: Dict[str, Any]
    check_in_status: str
    registered_at: str


class RegistrationRequest(BaseModel):
    form_data: Dict[str, Any] = Field(default_factory=dict)


class RegistrationResponse(BaseModel):
    participant: ParticipantOut
    # Exact QR content for the entry pass
    entry_pass: str
    entry_pass_image: str


class CheckInRequest(BaseModel):
    # Any shape is accepted; the check-in core refuses it as an invalid pass
    token: Any = None


class EntryPassResponse(BaseModel):
    participant: ParticipantOut
    event_name: Optional[str] = None


class CheckInResponse(EntryPassResponse):
    already_checked_in: bool


class StatsResponse(BaseModel):
    event_id: str
    total: int
    checked_in: int
    pending: int
    check_in_rate: int


class Credentials(BaseModel):
    email: str = ""
    password: str = ""


class UserOut(BaseModel):
    id: str
    email: str


class SessionResponse(BaseModel):
    user: Optional[UserOut] = None
    loading: bool = False


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that generates a unique request_id for each request
    and adds it to the logs and the response headers.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = uuid4().hex[:16]
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Request processed: request_id={request_id}, "
            f"method={request.method}, path={request.url.path}, "
            f"status={response.status_code}, duration_ms={duration_ms:.2f}"
        )
        return response


IDENTITY_STATUS = {
    IdentityErrorKind.INVALID_CREDENTIALS: 401,
    IdentityErrorKind.NOT_SIGNED_IN: 401,
    IdentityErrorKind.ACCOUNT_EXISTS: 409,
    IdentityErrorKind.PROVIDER_UNAVAILABLE: 502,
}


def error_response(error: EventFlowError) -> JSONResponse:
    """
    Converts a core error into a discriminated JSON body: {"error": kind, "detail": message}.
    """
    body: Dict[str, Any] = {"error": error.kind, "detail": error.message}
    if isinstance(error, InvalidTokenError):
        status = 403
    elif isinstance(error, NotFoundError):
        status = 404
    elif isinstance(error, ValidationError):
        status = 422
        body["missing"] = error.missing
        body["invalid"] = error.invalid
    elif isinstance(error, DuplicateError):
        status = 409
        body["duplicate"] = error.duplicate.value
    elif isinstance(error, IdentityError):
        status = IDENTITY_STATUS.get(error.error_kind, 400)
        body["error"] = error.error_kind.value
    else:
        status = 400
    return JSONResponse(status_code=status, content=body)


def validation_error_from_request(exc: RequestValidationError) -> ValidationError:
    """
    Names every malformed input of a request that did not match its schema.

    Examples:
        loc ("body", "max_team_size") -> "max_team_size"
        loc ("body",) -> "body"
    """
    invalid: List[str] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if not isinstance(part, int)]
        name = loc[-1] if loc else "request"
        if name not in invalid:
            invalid.append(name)
    return ValidationError(invalid=invalid)


def require_api_key(config: AppConfig, x_api_key: Optional[str]) -> None:
    """
    Validates the admin API key based on the environment.

    In production (ENV=prod) the key is always required.
    In development (ENV=dev) it is only required if ADMIN_API_KEY is configured.
    """
    expected_key = config.admin_api_key or ""

    if config.env == "prod":
        if not x_api_key or x_api_key != expected_key:
            logger.warning("Unauthorized admin access attempt in PRODUCTION")
            raise HTTPException(status_code=401, detail="Invalid API key")
    elif expected_key.strip():
        if x_api_key != expected_key:
            logger.warning("Unauthorized admin access attempt in DEV")
            raise HTTPException(status_code=401, detail="Invalid API key")
    else:
        logger.debug("ADMIN_API_KEY not configured, accepting request without authentication (development mode)")


def create_identity_client(config: AppConfig) -> IdentityClient:
    if config.identity_backend == "supabase":
        return SupabaseIdentityClient(
            base_url=config.supabase_url,
            anon_key=config.supabase_anon_key,
            timeout_s=config.identity_timeout_s,
        )
    return InMemoryIdentityClient()


def event_out(event: Event) -> EventOut:
    return EventOut(**event.to_record())


def participant_out(participant: Participant) -> ParticipantOut:
    return ParticipantOut(**participant.to_record())


def create_app(
    config: Optional[AppConfig] = None,
    engine: Optional[EventFlowEngine] = None,
    identity_client: Optional[IdentityClient] = None,
) -> FastAPI:
    """
    Creates the FastAPI application and injects its main dependencies
    (config, engine, auth session).
    """
    config = config or AppConfig.load_from_env()
    engine = engine or EventFlowEngine(config=config)
    auth_session = AuthSession(identity_client or create_identity_client(config))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting EventFlow API...")
        engine.initialize()
        try:
            await auth_session.initialize()
        except IdentityError as e:
            logger.warning(f"Could not restore identity session: {e.message}")
        yield
        logger.info("Shutting down...")
        await auth_session.client.close()

    app = FastAPI(
        title="EventFlow API",
        version="0.1.0",
        description="Event registration and door check-in.",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.auth_session = auth_session

    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(EventFlowError)
    async def handle_core_error(request: Request, exc: EventFlowError) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.info(
            f"Request rejected: request_id={request_id}, path={request.url.path}, "
            f"kind={exc.kind}, detail={exc.message}"
        )
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_malformed_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = validation_error_from_request(exc)
        request_id = getattr(request.state, "request_id", "unknown")
        logger.info(
            f"Malformed request: request_id={request_id}, path={request.url.path}, "
            f"invalid={error.invalid}"
        )
        return error_response(error)

    # Admin access is decided by X-API-KEY alone
    def require_admin(
        x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
    ) -> None:
        require_api_key(config, x_api_key)

    admin = [Depends(require_admin)]

    @app.get("/health")
    def health_check():
        """
        Health check endpoint for monitoring and Docker healthchecks.
        """
        store_ok = engine.store.ping()
        return {
            "status": "healthy" if store_ok else "degraded",
            "storage": {
                "backend": type(engine.store).__name__,
                "status": "ok" if store_ok else "error",
            },
            "identity": {
                "backend": type(auth_session.client).__name__,
                "signed_in": auth_session.current_user is not None,
            },
        }

    @app.get("/events", response_model=List[EventOut])
    def list_events() -> List[EventOut]:
        return [event_out(e) for e in engine.list_events()]

    @app.get("/events/{event_id}", response_model=EventOut)
    def get_event(event_id: str) -> EventOut:
        return event_out(engine.get_event(event_id))

    @app.post("/events", response_model=EventOut, status_code=201, dependencies=admin)
    def create_event(payload: EventCreate) -> EventOut:
        return event_out(engine.create_event(payload.model_dump()))

    @app.patch("/events/{event_id}", response_model=EventOut, dependencies=admin)
    def update_event(event_id: str, payload: EventPatch) -> EventOut:
        return event_out(engine.update_event(event_id, payload.model_dump(exclude_unset=True)))

    @app.delete("/events/{event_id}", status_code=204, dependencies=admin)
    def delete_event(event_id: str) -> Response:
        engine.delete_event(event_id)
        return Response(status_code=204)

    @app.post(
        "/events/{event_id}/registrations",
        response_model=RegistrationResponse,
        status_code=201,
    )
    def register(event_id: str, payload: RegistrationRequest, request: Request) -> RegistrationResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.info(
            f"Registration received: request_id={request_id}, event_id={event_id}, "
            f"fields={len(payload.form_data)}"
        )
        participant = engine.register(event_id, payload.form_data)
        return RegistrationResponse(
            participant=participant_out(participant),
            entry_pass=entry_pass_payload(participant),
            entry_pass_image=f"/passes/{participant.entry_uuid}.png",
        )

    @app.get("/passes/{token}.png", response_class=Response)
    def entry_pass_image(token: str) -> Response:
        """
        QR image of an entry pass. Holding the token is the access right,
        so this route is public; unknown tokens read as access denied.
        """
        participant = engine.find_by_token(token)
        return Response(content=render_entry_pass_png(participant), media_type="image/png")

    @app.get(
        "/events/{event_id}/participants",
        response_model=List[ParticipantOut],
        dependencies=admin,
    )
    def list_participants(event_id: str) -> List[ParticipantOut]:
        engine.get_event(event_id)
        return [participant_out(p) for p in engine.list_participants(event_id)]

    @app.get("/events/{event_id}/stats", response_model=StatsResponse, dependencies=admin)
    def event_stats(event_id: str) -> StatsResponse:
        engine.get_event(event_id)
        stats = engine.stats_for(event_id)
        return StatsResponse(
            event_id=stats.event_id,
            total=stats.total,
            checked_in=stats.checked_in,
            pending=stats.pending,
            check_in_rate=stats.check_in_rate,
        )

    def _event_name(event_id: str) -> Optional[str]:
        try:
            return engine.get_event(event_id).name
        except NotFoundError:
            return None

    @app.get("/checkin/{token}", response_model=EntryPassResponse, dependencies=admin)
    def lookup_entry_pass(token: str) -> EntryPassResponse:
        participant = engine.find_by_token(token)
        return EntryPassResponse(
            participant=participant_out(participant),
            event_name=_event_name(participant.event_id),
        )

    @app.post("/checkin", response_model=CheckInResponse, dependencies=admin)
    def check_in(payload: CheckInRequest) -> CheckInResponse:
        result = engine.check_in(payload.token)
        return CheckInResponse(
            participant=participant_out(result.participant),
            event_name=_event_name(result.participant.event_id),
            already_checked_in=result.already_checked_in,
        )

    def _session_response() -> SessionResponse:
        user = auth_session.current_user
        return SessionResponse(
            user=UserOut(id=user.id, email=user.email) if user else None,
            loading=auth_session.loading,
        )

    @app.get("/auth/session", response_model=SessionResponse)
    async def get_session() -> SessionResponse:
        return _session_response()

    @app.post("/auth/signin", response_model=SessionResponse)
    async def sign_in(payload: Credentials) -> SessionResponse:
        await auth_session.sign_in(payload.email, payload.password)
        return _session_response()

    @app.post("/auth/signup", response_model=SessionResponse, status_code=201)
    async def sign_up(payload: Credentials) -> SessionResponse:
        await auth_session.sign_up(payload.email, payload.password)
        return _session_response()

    @app.post("/auth/signout", response_model=SessionResponse)
    async def sign_out() -> SessionResponse:
        await auth_session.sign_out()
        return _session_response()

    return app
