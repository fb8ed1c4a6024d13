from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Wallboard"
    host: str = "0.0.0.0"
    port: int = 8000
    preset_slug: str = "default"

    log_level: str = "INFO"
    log_to_console: bool = True
    log_file: str = "logs/wallboard.log"
    log_sql_preview_chars: int = Field(default=240, ge=40, le=4000)

    sql_server: str = "localhost"
    sql_port: int = 1433
    sql_database: str = "scheduling"
    sql_user: str = "wallboard"
    sql_password: str = ""
    sql_driver: str = "ODBC Driver 18 for SQL Server"
    sql_trust_server_certificate: bool = True
    sql_schema: str = "dbo"
    sql_query_timeout_seconds: int = Field(default=30, ge=1, le=600)
    sql_max_concurrent_queries: int = Field(default=4, ge=1, le=32)

    detail_window_days: int = Field(default=7, ge=1, le=31)
    refresh_debounce_ms: int = Field(default=300, ge=10, le=10000)
    change_poll_interval_seconds: float = Field(default=1.0, ge=0.1, le=60.0)
    highlight_sweep_seconds: float = Field(default=5.0, ge=0.5, le=60.0)
    ticker_min_interval_seconds: float = Field(default=5.0, ge=1.0, le=60.0)
    announcement_limit: int = Field(default=20, ge=1, le=200)

    overview_page_size: int = Field(default=6, ge=1, le=50)
    crew_page_size: int = Field(default=4, ge=1, le=50)
    logistics_page_size: int = Field(default=6, ge=1, le=50)

    autoscroll_speed_px: float = Field(default=50.0, ge=1.0, le=1000.0)
    autoscroll_kiosk_speed_px: float = Field(default=20.0, ge=1.0, le=1000.0)
    autoscroll_pause_seconds: float = Field(default=1.0, ge=0.0, le=30.0)
    autoscroll_frame_ms: int = Field(default=16, ge=5, le=200)
    calendar_cell_rotate_ms: int = Field(default=5000, ge=500, le=60000)

    event_queue_size: int = Field(default=2000, ge=100, le=100000)

    def build_odbc_dsn(self, driver: str | None = None) -> str:
        selected_driver = (driver or self.sql_driver).strip()
        dsn = (
            f"DRIVER={{{selected_driver}}};"
            f"SERVER={self.sql_server},{self.sql_port};"
            f"DATABASE={self.sql_database};"
            f"UID={self.sql_user};"
            f"PWD={self.sql_password};"
        )
        if "ODBC Driver" in selected_driver and "SQL Server" in selected_driver:
            trust = "yes" if self.sql_trust_server_certificate else "no"
            dsn += f"TrustServerCertificate={trust};"
        return dsn


settings = Settings()
