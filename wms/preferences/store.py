"""Local UI preferences persisted as a small JSON file."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ValidationError, field_validator

from wms.config import settings
from wms.utils import Logger

logger = Logger("wms.preferences")


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class Preferences(BaseModel):
    theme: Theme = Theme.LIGHT

    @field_validator("theme", mode="before")
    @classmethod
    def fallback_theme(cls, value):
        if value not in (Theme.LIGHT.value, Theme.DARK.value, Theme.LIGHT, Theme.DARK):
            return Theme.LIGHT
        return value


class PreferenceStore:
    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or settings.preferences_path)
        self.preferences = self.load()

    def load(self) -> Preferences:
        if not self.path.exists():
            return Preferences()
        try:
            return Preferences.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning(f"Ignoring unreadable preferences at {self.path}: {exc}")
            return Preferences()

    @property
    def theme(self) -> Theme:
        return self.preferences.theme

    def set_theme(self, theme: Theme | str) -> Preferences:
        self.preferences = self.preferences.model_copy(update={"theme": Theme(theme)})
        self.save()
        return self.preferences

    def save(self) -> None:
        try:
            self.path.write_text(self.preferences.model_dump_json(), encoding="utf-8")
        except OSError as exc:
            logger.error(f"Could not write preferences to {self.path}: {exc}")
