from __future__ import annotations

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(
        "sqlite:////tmp/vacation_planner.db", alias="DATABASE_URL"
    )
    db_create_all: bool = Field(False, alias="DB_CREATE_ALL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    redis_url: str | None = Field(None, alias="REDIS_URL")
    remote_timeout_s: float = Field(
        1.5,
        alias="REMOTE_TIMEOUT_S",
        description="Upper bound for every remote cache / account call",
    )
    sync_debounce_s: float = Field(
        2.0,
        alias="SYNC_DEBOUNCE_S",
        description="Quiet period before local changes are pushed to the account",
    )
    account_api_url: str | None = Field(
        None,
        alias="ACCOUNT_API_URL",
        description="Base URL of a remote vacation-days API; in-process store when unset",
    )
    local_storage_path: str = Field(
        "/tmp/vacation_planner_local.json", alias="LOCAL_STORAGE_PATH"
    )

    log_logins: bool = Field(True, alias="LOG_LOGINS")
    collect_ip_addresses: bool = Field(True, alias="COLLECT_IP_ADDRESSES")
    collect_user_agents: bool = Field(True, alias="COLLECT_USER_AGENTS")
    login_log_read_limit: int = Field(100, alias="LOGIN_LOG_READ_LIMIT")
    max_memory_login_logs: int = Field(1000, alias="MAX_MEMORY_LOGIN_LOGS")

    admin_emails: list[str] = Field(default_factory=list, alias="ADMIN_EMAILS")
    trusted_proxies: list[str] = Field(
        default_factory=lambda: ["127.0.0.1"], alias="TRUSTED_PROXIES"
    )
    max_planner_sessions: int = Field(1000, alias="MAX_PLANNER_SESSIONS")

    model_config = ConfigDict(
        extra="ignore",
        env_file=".env",
        case_sensitive=False,
    )
