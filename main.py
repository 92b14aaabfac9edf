import logging
import uvicorn
from datetime import datetime

from eventflow.config import AppConfig
from eventflow.infra.logging import DATE_FORMAT, setup_logging
from eventflow.api.http import create_app

config = AppConfig.load_from_env()
log_file = setup_logging(config.log_dir)

logging.info(f"Logging configured. Log file: {log_file}")
logging.info(f"Application started at {datetime.now().strftime(DATE_FORMAT)}")

app = create_app(config)

if __name__ == "__main__":
    # In production a process manager (systemd, docker, etc.) starts this
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info",
    )
