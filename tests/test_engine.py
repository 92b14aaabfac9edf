import logging

import pytest

from eventflow.config import AppConfig
from eventflow.core.engine import EventFlowEngine, create_record_store
from eventflow.core.errors import NotFoundError
from eventflow.infra.email_service import EmailService
from eventflow.infra.logging import setup_logging
from eventflow.storage import InMemoryRecordStore, SqlRecordStore

DRAFT = {
    "name": "Meetup",
    "date": "2025-05-01",
    "location": "Cafe",
    "form_fields": [
        {"id": "name", "label": "Your Name", "type": "text", "required": True},
        {"id": "mail", "label": "E-mail", "type": "email", "required": True},
    ],
}


class RecordingEmailService(EmailService):
    def __init__(self, fail=False):
        super().__init__(AppConfig())
        self.sent = []
        self.fail = fail

    def send_entry_pass(self, event, participant):
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append((event.id, participant.entry_uuid))


def _engine(email_service=None, **overrides):
    config = AppConfig(seed_sample_data=False, **overrides)
    return EventFlowEngine(config, store=InMemoryRecordStore(), email_service=email_service)


class TestEngine:
    def test_initialize_seeds_once(self):
        engine = EventFlowEngine(AppConfig(), store=InMemoryRecordStore())
        assert engine.list_events() == []
        engine.initialize()
        engine.initialize()
        names = [e.name for e in engine.list_events()]
        assert names == ["Tech Conference 2025", "Hackathon 2025"]

    def test_no_seeding_when_disabled(self):
        engine = _engine()
        engine.initialize()
        assert engine.list_events() == []

    def test_register_unknown_event(self):
        with pytest.raises(NotFoundError):
            _engine().register("missing", {})

    def test_full_flow(self):
        engine = _engine()
        event = engine.create_event(DRAFT)
        participant = engine.register(event.id, {"name": "Ann", "mail": "ann@x.com"})
        assert participant.name == "Ann"
        assert engine.find_by_token(participant.entry_uuid) == participant
        assert engine.check_in(participant.entry_uuid).already_checked_in is False
        assert engine.list_participants(event.id)[0].is_checked_in
        assert engine.stats_for(event.id).check_in_rate == 100

    def test_delete_keeps_participants(self):
        engine = _engine()
        event = engine.create_event(DRAFT)
        participant = engine.register(event.id, {"name": "Ann", "mail": "ann@x.com"})
        engine.delete_event(event.id)
        assert engine.find_by_token(participant.entry_uuid).event_id == event.id


class TestEntryPassEmail:
    def test_sent_when_enabled(self):
        service = RecordingEmailService()
        engine = _engine(email_service=service, send_entry_pass_email=True)
        event = engine.create_event(DRAFT)
        participant = engine.register(event.id, {"name": "Ann", "mail": "ann@x.com"})
        assert service.sent == [(event.id, participant.entry_uuid)]

    def test_not_sent_when_disabled(self):
        service = RecordingEmailService()
        engine = _engine(email_service=service)
        event = engine.create_event(DRAFT)
        engine.register(event.id, {"name": "Ann", "mail": "ann@x.com"})
        assert service.sent == []

    def test_failure_keeps_registration(self, caplog):
        engine = _engine(email_service=RecordingEmailService(fail=True), send_entry_pass_email=True)
        event = engine.create_event(DRAFT)
        with caplog.at_level(logging.ERROR):
            participant = engine.register(event.id, {"name": "Ann", "mail": "ann@x.com"})
        assert engine.find_by_token(participant.entry_uuid) == participant
        assert "Failed to send entry pass" in caplog.text

    def test_dev_log_message(self):
        engine = _engine()
        event = engine.create_event(DRAFT)
        participant = engine.register(event.id, {"name": "Ann", "mail": "ann@x.com"})
        message = EmailService(AppConfig()).build_entry_pass_message(event, participant)
        assert message["To"] == "ann@x.com"
        assert participant.entry_uuid in message.get_content()
        EmailService(AppConfig()).send_entry_pass(event, participant)


class TestCreateRecordStore:
    def test_memory_by_default(self):
        assert isinstance(create_record_store(AppConfig()), InMemoryRecordStore)

    def test_sql_backend(self):
        store = create_record_store(AppConfig(storage_backend="sql", database_url="sqlite://"))
        assert isinstance(store, SqlRecordStore)
        assert store.ping() is True

    def test_unreachable_redis_falls_back_in_dev(self):
        config = AppConfig(storage_backend="redis", redis_url="redis://127.0.0.1:1/0")
        assert isinstance(create_record_store(config), InMemoryRecordStore)

    def test_unreachable_redis_fails_in_prod(self):
        config = AppConfig(
            env="prod", storage_backend="redis",
            redis_url="redis://127.0.0.1:1/0", admin_api_key="k",
        )
        with pytest.raises(Exception):
            create_record_store(config)


def test_setup_logging_writes_file(tmp_path):
    log_file = setup_logging(log_dir=str(tmp_path))
    logging.getLogger("eventflow.test").info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()
    with open(log_file, encoding="utf-8") as f:
        assert "hello" in f.read()
    for handler in list(logging.getLogger().handlers):
        handler.close()
        logging.getLogger().removeHandler(handler)
