from datetime import timedelta
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Service Bidding Lifecycle Engine"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── SCHEDULER ───────────
    scheduler_enabled: bool = True
    cycle_interval_seconds: int = 120
    debug_endpoints_enabled: bool = False

    # ─────────── LIFECYCLE WINDOWS ───────────
    auto_submit_grace_hours: int = 24
    selection_window_minutes: int = 1440  # 24 hours
    round2_window_minutes: int = 1440  # 24 hours
    correction_deadline_hours: int = 48
    archive_retention_days: int = 30
    notice_lifetime_days: int = 7

    # ─────────── SELECTION ───────────
    round1_shortlist_size: int = 10
    round2_finalist_count: int = 3

    # ─────────── DOCUMENTS ───────────
    document_storage_dir: str = "./storage/documents"
    document_public_base_url: str = "/documents"

    @property
    def auto_submit_grace(self) -> timedelta:
        return timedelta(hours=self.auto_submit_grace_hours)

    @property
    def selection_window(self) -> timedelta:
        return timedelta(minutes=self.selection_window_minutes)

    @property
    def round2_window(self) -> timedelta:
        return timedelta(minutes=self.round2_window_minutes)

    @property
    def archive_retention(self) -> timedelta:
        return timedelta(days=self.archive_retention_days)

    @property
    def notice_lifetime(self) -> timedelta:
        return timedelta(days=self.notice_lifetime_days)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
