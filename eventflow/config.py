from dataclasses import dataclass
import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("memory", "sql", "redis")
IDENTITY_BACKENDS = ("memory", "supabase")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "y")


@dataclass(frozen=True)
class AppConfig:
    """
    Main application settings.

    Everything that changes between deployments lives here so that
    the engine, the HTTP layer and the tests read it from one place.
    """
    env: str = "dev"  # "dev" or "prod"
    database_url: str = "sqlite:///./eventflow.db"
    storage_backend: str = "memory"
    redis_url: str = ""
    redis_key_prefix: str = "eventflow"
    seed_sample_data: bool = True
    admin_api_key: str = ""
    identity_backend: str = "memory"
    supabase_url: str = ""
    supabase_anon_key: str = ""
    identity_timeout_s: float = 10.0
    send_entry_pass_email: bool = False
    smtp_host: str = "dev-log"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "passes@eventflow.local"
    log_dir: str = "logs"

    @classmethod
    def load_from_env(cls) -> "AppConfig":
        """
        Loads settings from environment variables.
        Reads the .env file first (if present), then the process environment.
        Raises RuntimeError when a required combination is missing.
        """
        load_dotenv()

        env = os.getenv("ENV", "dev").lower()
        if env not in ("dev", "prod"):
            logger.warning(f"Invalid ENV '{env}', falling back to 'dev'")
            env = "dev"

        storage_backend = os.getenv("STORAGE_BACKEND", "memory").strip().lower()
        if storage_backend not in STORAGE_BACKENDS:
            raise RuntimeError(
                f"Unknown STORAGE_BACKEND '{storage_backend}'. "
                f"Valid values: {list(STORAGE_BACKENDS)}"
            )

        redis_url = os.getenv("REDIS_URL", "")
        if storage_backend == "redis" and not redis_url.strip():
            raise RuntimeError("STORAGE_BACKEND=redis requires REDIS_URL.")

        identity_backend = os.getenv("IDENTITY_BACKEND", "memory").strip().lower()
        if identity_backend not in IDENTITY_BACKENDS:
            raise RuntimeError(
                f"Unknown IDENTITY_BACKEND '{identity_backend}'. "
                f"Valid values: {list(IDENTITY_BACKENDS)}"
            )

        supabase_url = os.getenv("SUPABASE_URL", "")
        supabase_anon_key = os.getenv("SUPABASE_ANON_KEY", "")
        if identity_backend == "supabase" and not (supabase_url.strip() and supabase_anon_key.strip()):
            raise RuntimeError(
                "IDENTITY_BACKEND=supabase requires SUPABASE_URL and SUPABASE_ANON_KEY."
            )

        # In production the admin surface must never be open
        admin_api_key = os.getenv("ADMIN_API_KEY", "")
        if env == "prod":
            if not admin_api_key.strip():
                raise RuntimeError(
                    "ENV=prod requires ADMIN_API_KEY. "
                    "Configure ADMIN_API_KEY in the production environment."
                )
            logger.info("PRODUCTION mode: ADMIN_API_KEY validated")
        elif not admin_api_key.strip():
            logger.warning(
                "⚠️  DEV MODE: ADMIN_API_KEY not configured. "
                "Admin endpoints will accept requests without authentication."
            )

        return cls(
            env=env,
            database_url=os.getenv("DATABASE_URL", "sqlite:///./eventflow.db"),
            storage_backend=storage_backend,
            redis_url=redis_url,
            redis_key_prefix=os.getenv("REDIS_KEY_PREFIX", "eventflow"),
            seed_sample_data=_env_flag("SEED_SAMPLE_DATA", "1"),
            admin_api_key=admin_api_key,
            identity_backend=identity_backend,
            supabase_url=supabase_url,
            supabase_anon_key=supabase_anon_key,
            identity_timeout_s=float(os.getenv("IDENTITY_TIMEOUT_S", "10")),
            send_entry_pass_email=_env_flag("SEND_ENTRY_PASS_EMAIL", "0"),
            smtp_host=os.getenv("SMTP_HOST", "dev-log"),
            smtp_port=int(os.getenv("SMTP_PORT", "587")),
            smtp_user=os.getenv("SMTP_USER", ""),
            smtp_password=os.getenv("SMTP_PASSWORD", ""),
            smtp_from=os.getenv("SMTP_FROM", "passes@eventflow.local"),
            log_dir=os.getenv("LOG_DIR", "logs"),
        )
