from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    database_url: str
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    cors_origins: List[str] = ["*"]
    debug: bool = False
    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None
    # Credentials
    default_document_type: str = "CC"
    visitor_pass_validity_hours: int = 24
    visitor_pass_closing_window_hours: int = 2
    visitor_surname_tokens: int = 2
    # Scan-complete policy
    office_hours_start: int = 8
    office_hours_end: int = 17
    day_shift_start: int = 6
    day_shift_end: int = 18
    environment_capacity_ratio: float = 0.9
    # Detector rules
    off_schedule_start_hour: int = 6
    off_schedule_end_hour: int = 22
    burst_access_threshold: int = 4
    burst_access_high_threshold: int = 8
    burst_access_window_minutes: int = 120
    failed_login_threshold: int = 3
    failed_login_critical_threshold: int = 5
    failed_login_window_minutes: int = 15
    failed_login_dedup_minutes: int = 60
    suspicious_access_threshold: int = 5
    suspicious_access_window_minutes: int = 30
    # Sweep and housekeeping
    security_scan_enabled: bool = True
    security_scan_interval_seconds: int = 300
    security_log_retention_days: int = 90
    read_alert_retention_days: int = 30

    class Config:
        env_file = ".env"


settings = Settings()
