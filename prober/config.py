from __future__ import annotations

import tempfile

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Probing
    probe_interval: float = 61.0  # seconds to pause between probe runs
    probe_workers: int = 16  # threads available to blocking probe calls
    probes_file: str = "probes.yaml"
    probes_disabled: bool = False  # no probes at all

    # Probe selection (comma-separated names)
    only_probes: str = ""  # if set, ONLY these probes run
    disabled_probes: str = ""

    # Alerting
    alert_threshold: int = 100  # level of badness before alerting
    max_alert_frequency: float = 15 * 60.0  # never send alerts more often than this
    alerts_disabled: bool = False

    # Outcome log
    outcome_log_dir: str = tempfile.gettempdir()
    outcome_log_name: str = "prober.outcomes.log"
    record_capacity: int = 200  # maximum records kept in memory per probe

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Logging
    log_level: str = "INFO"

    # Alert delivery (optional: Slack, Telegram, email)
    slack_webhook_url: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    alert_sender: str = "alerts-noreply@localhost"
    alert_recipient: str = ""


settings = Settings()
