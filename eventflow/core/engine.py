import logging
import threading
from typing import Any, Dict, List, Optional

from .catalog import EventCatalog
from .checkin import CheckInEngine, CheckInResult
from .models import Event, Participant
from .registration import RegistrationEngine
from .stats import EventStats, StatsAggregator
from ..config import AppConfig
from ..domain.sample_events import seed_sample_events
from ..infra.email_service import EmailService
from ..storage import InMemoryRecordStore, RecordStore, RedisRecordStore, SqlRecordStore
from ..storage.database import create_session_factory

logger = logging.getLogger(__name__)


def create_record_store(config: AppConfig) -> RecordStore:
    """
    Builds the record store named by config.storage_backend.

    In dev, a backend that fails to start falls back to memory;
    in prod the error propagates.
    """
    try:
        if config.storage_backend == "redis":
            store = RedisRecordStore(
                redis_url=config.redis_url,
                key_prefix=config.redis_key_prefix,
            )
            logger.info(f"Records using Redis: url={config.redis_url}")
            return store
        if config.storage_backend == "sql":
            # Outside dev, tables come from Alembic migrations
            session_factory = create_session_factory(
                config.database_url, create_tables=config.env == "dev"
            )
            db_type = "sqlite" if "sqlite" in config.database_url else "postgres" if "postgres" in config.database_url else "unknown"
            logger.info(f"Records using SQL: database_type={db_type}")
            return SqlRecordStore(session_factory)
    except Exception as e:
        if config.env == "prod":
            raise
        logger.error(
            f"Error initializing {config.storage_backend} record store: {e}, "
            f"using InMemory as fallback"
        )
        return InMemoryRecordStore()

    logger.info("Records using in-memory storage")
    return InMemoryRecordStore()


class EventFlowEngine:
    """
    Application core.

    - Owns the record store and the single lock that makes every
      mutating operation one read-compute-write unit
    - Exposes the four flows: manage events, register, check in, stats
    - Sends the entry-pass e-mail after a registration when enabled
    """

    def __init__(
        self,
        config: AppConfig,
        store: Optional[RecordStore] = None,
        email_service: Optional[EmailService] = None,
    ) -> None:
        self._config = config
        self._store = store if store is not None else create_record_store(config)
        self._lock = threading.RLock()
        self._email_service = email_service or EmailService(config)

        self.catalog = EventCatalog(self._store, self._lock)
        self.registration = RegistrationEngine(self._store, self._lock)
        self.checkin = CheckInEngine(self._store, self._lock)
        self.stats = StatsAggregator(self._store)

        logger.info(
            f"EventFlowEngine initialized: storage={type(self._store).__name__}, "
            f"seed_sample_data={config.seed_sample_data}"
        )

    @property
    def store(self) -> RecordStore:
        return self._store

    def initialize(self) -> None:
        """
        Explicit startup step: seeds sample events into an empty catalog
        when configured to.
        """
        if self._config.seed_sample_data:
            with self._lock:
                seed_sample_events(self.catalog)

    def list_events(self) -> List[Event]:
        return self.catalog.list_events()

    def get_event(self, event_id: str) -> Event:
        return self.catalog.get_event(event_id)

    def create_event(self, draft: Dict[str, Any]) -> Event:
        return self.catalog.create_event(draft)

    def update_event(self, event_id: str, patch: Dict[str, Any]) -> Event:
        return self.catalog.update_event(event_id, patch)

    def delete_event(self, event_id: str) -> None:
        self.catalog.delete_event(event_id)

    def register(self, event_id: str, submission: Dict[str, Any]) -> Participant:
        """
        Registers a submission for an event and, when enabled, e-mails the pass.
        An e-mail failure is logged; the registration stands.
        """
        event = self.catalog.get_event(event_id)
        participant = self.registration.register(event, submission)

        if self._config.send_entry_pass_email and participant.email:
            try:
                self._email_service.send_entry_pass(event, participant)
            except Exception as email_error:
                logger.error(
                    f"Failed to send entry pass e-mail: to={participant.email}, "
                    f"error={type(email_error).__name__}: {email_error}",
                    exc_info=True,
                )
        return participant

    def list_participants(self, event_id: str) -> List[Participant]:
        return self.stats.participants_for(event_id)

    def find_by_token(self, token: str) -> Participant:
        return self.checkin.find_by_token(token)

    def check_in(self, token: str) -> CheckInResult:
        return self.checkin.check_in(token)

    def stats_for(self, event_id: str) -> EventStats:
        return self.stats.stats_for(event_id)
