from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "perrastay-dev-secret-not-for-production"
DEV_CSRF_SECRET = "perrastay-dev-csrf-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_name: str = "PerraStay"
    app_version: str = "2026-10-19.v1"
    app_url: str = "http://localhost:5000"
    log_level: str = "INFO"
    sql_log_level: str = "WARNING"
    database_url: str = "sqlite:///./perrastay.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Bearer credential ----
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    jwt_cookie_name: str = "auth-token"
    jwt_cookie_secure: int = 0
    jwt_cookie_samesite: str = "strict"

    # ---- Password hashing ----
    pbkdf2_iterations: int = 210_000

    # ---- Lockout ----
    login_max_failed_attempts: int = 5
    login_lockout_minutes: int = 15

    # ---- Single-use tokens ----
    verification_token_hours: int = 24
    reset_token_minutes: int = 60

    # ---- Bookings ----
    # one reservation_nights row per night, so stays are bounded
    max_stay_nights: int = 365

    # Local dev only: skip the verification email round-trip on signup.
    auto_verify_email: bool = False

    # ---- CSRF ----
    csrf_enabled: bool = True
    csrf_secret: str = DEV_CSRF_SECRET
    csrf_cookie_name: str = "csrf_token"
    csrf_header_name: str = "X-CSRF-Token"

    # ---- Outbound email ----
    email_backend: str = "log"  # log|resend|celery
    email_from: str = "PerraStay <hello@perrastay.com>"
    resend_api_key: str | None = None

    # ---- Celery ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    @property
    def is_prod(self) -> bool:
        return (self.app_env or "local").strip().lower() in ("prod", "production")

    def model_post_init(self, __context) -> None:
        if self.is_prod:
            if self.jwt_secret == DEV_JWT_SECRET or not self.jwt_secret.strip():
                raise ValueError("SECURITY: JWT_SECRET must be set in prod")
            if self.csrf_secret == DEV_CSRF_SECRET or not self.csrf_secret.strip():
                raise ValueError("SECURITY: CSRF_SECRET must be set in prod")
            if self.auto_verify_email:
                raise ValueError("SECURITY: auto_verify_email=True is not allowed in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
