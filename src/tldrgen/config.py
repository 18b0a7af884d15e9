"""
Plugin settings for tldrgen.

Settings are three plain strings (API key, endpoint template, prompt prefix)
persisted as a JSON object and merged over the defaults on load.
"""

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Optional

import structlog

log = structlog.get_logger()

DEFAULT_KEY = "default"
DEFAULT_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-1.5-flash:generateContent?key="
)
DEFAULT_PROMPT = (
    "Generate me a TLDR Based off of the following text. Make it one to two "
    "sentences. DO NOT INCLUDE THE WORD TLDR, ONLY PROVIDE THE TLDR: "
)


class SettingsError(Exception):
    """Settings file could not be read."""


class UnknownSettingError(SettingsError):
    """Setting name is not one of key, endpoint, prompt."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown setting: {name}")


@dataclass
class TLDRSettings:
    """User settings for TLDR generation.

    Attributes:
        key: API key appended to the endpoint (default: "default")
        endpoint: Endpoint URL template the key is appended to
        prompt: Prompt prefix placed before the document text
    """

    key: str = DEFAULT_KEY
    endpoint: str = DEFAULT_ENDPOINT
    prompt: str = DEFAULT_PROMPT

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    def with_env_overrides(self) -> "TLDRSettings":
        """Return a copy with TLDRGEN_* environment variables applied."""
        return replace(
            self,
            key=os.getenv("TLDRGEN_API_KEY", self.key),
            endpoint=os.getenv("TLDRGEN_ENDPOINT", self.endpoint),
            prompt=os.getenv("TLDRGEN_PROMPT", self.prompt),
        )


@dataclass(frozen=True)
class SettingField:
    """Label and help text shown for one setting."""

    name: str
    label: str
    description: str
    placeholder: str
    multiline: bool = False


SETTING_FIELDS = (
    SettingField("key", "API Key", "Enter your API key", "Enter your secret"),
    SettingField("endpoint", "API Endpoint", "Enter the API endpoint", "Enter endpoint URL"),
    SettingField(
        "prompt",
        "Prompt",
        "Enter the prompt used for TLDR generation",
        "Enter prompt",
        multiline=True,
    ),
)


def get_settings_path() -> Path:
    """Settings file path (TLDRGEN_SETTINGS or ~/.tldrgen/settings.json)."""
    env_path = os.getenv("TLDRGEN_SETTINGS")
    if env_path:
        return Path(env_path)
    return Path.home() / ".tldrgen" / "settings.json"


class SettingsStore:
    """JSON-backed settings store.

    Holds the live TLDRSettings instance. Every update is saved immediately.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else get_settings_path()
        self.settings = TLDRSettings()

    def load(self) -> TLDRSettings:
        """Load persisted values merged over the defaults."""
        settings = TLDRSettings()

        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            except json.JSONDecodeError as e:
                raise SettingsError(f"Invalid settings file {self.path}: {e}") from e

            if not isinstance(data, dict):
                raise SettingsError(f"Invalid settings file {self.path}: expected an object")

            known = {
                name: str(value)
                for name, value in data.items()
                if name in TLDRSettings.field_names() and value is not None
            }
            settings = replace(settings, **known)

        self.settings = settings
        log.debug("settings_loaded", path=str(self.path))
        return settings

    def save(self) -> None:
        """Write the current settings to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.settings.to_dict(), indent=2), encoding="utf-8")
        log.debug("settings_saved", path=str(self.path))

    def update(self, name: str, value: str) -> TLDRSettings:
        """Set one field and save.

        Raises:
            UnknownSettingError: If name is not a settings field.
        """
        if name not in TLDRSettings.field_names():
            raise UnknownSettingError(name)

        setattr(self.settings, name, value)
        self.save()
        log.info("setting_updated", field=name)
        return self.settings
