import os
import logging
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class WorkflowSettings(BaseModel):
    # Value booked for a first_half / second_half request
    half_day_value: Decimal = Field(default=Decimal(os.getenv("HALF_DAY_VALUE", "0.5")))
    # date.weekday() numbers that never count as business days
    weekend_days: List[int] = Field(
        default_factory=lambda: [
            int(d) for d in os.getenv("WEEKEND_DAYS", "5,6").split(",") if d.strip()
        ]
    )
    # When every level of the matched workflow is the requester's own role
    auto_approve_without_levels: bool = Field(
        default=_env_flag("AUTO_APPROVE_WITHOUT_LEVELS", "true")
    )


class Config(BaseModel):
    app_name: str = "Leave Workflow API"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    # Identity is established upstream; the gateway forwards the user id
    user_id_header: str = os.getenv("USER_ID_HEADER", "X-User-ID")

    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    # Approval engine
    workflow: WorkflowSettings = WorkflowSettings()

    # Feature Flags
    bootstrap_on_startup: bool = _env_flag("BOOTSTRAP_ON_STARTUP", "true")
    notifications_enabled: bool = _env_flag("NOTIFICATIONS_ENABLED", "true")

settings = Config()

_logger = logging.getLogger(__name__)
if settings.environment == "development" and settings.database_url.startswith("sqlite:///./"):
    _logger.warning("Using local SQLite database; only acceptable in development.")
