import logging
import os

from pydantic import BaseModel, Field

from staff_availability.models import UNKNOWN_LABEL

DEFAULT_INACTIVE_STATUSES = ("cancelled",)


class EngineSettings(BaseModel):
    # bookings in these statuses never block anyone
    inactive_statuses: frozenset[str] = Field(
        default_factory=lambda: frozenset(DEFAULT_INACTIVE_STATUSES)
    )
    unknown_label: str = UNKNOWN_LABEL
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineSettings":
        settings = cls()
        statuses = os.getenv("AVAILABILITY_INACTIVE_STATUSES")
        if statuses:
            settings.inactive_statuses = frozenset(
                s.strip().lower() for s in statuses.split(",") if s.strip()
            )
        settings.unknown_label = os.getenv(
            "AVAILABILITY_UNKNOWN_LABEL", settings.unknown_label
        )
        settings.log_level = os.getenv(
            "AVAILABILITY_LOG_LEVEL", settings.log_level
        ).upper()
        return settings

    def is_active_status(self, status: str) -> bool:
        return status.lower() not in self.inactive_statuses


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
