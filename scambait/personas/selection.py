"""Persona selection settings and the stores that persist them."""

import json
import random
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from config.settings import settings as app_settings
from scambait.personas.catalog import DEFAULT_PERSONA, PERSONAS, Persona, is_valid_persona, persona_ids
from scambait.utils.errors import ValidationError
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

SELECTION_MODES = ("random", "round_robin", "fixed")


@dataclass(frozen=True)
class PersonaSettings:
    enabled_personas: List[str] = field(default_factory=persona_ids)
    selection_mode: str = "random"
    fixed_persona: Optional[str] = None
    last_used_persona_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabledPersonas": list(self.enabled_personas),
            "selectionMode": self.selection_mode,
            "fixedPersona": self.fixed_persona,
            "lastUsedPersonaIndex": self.last_used_persona_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PersonaSettings":
        """Build settings from stored camelCase data, keeping defaults for missing keys."""
        defaults = cls()
        enabled = data.get("enabledPersonas")
        mode = data.get("selectionMode")
        index = data.get("lastUsedPersonaIndex")
        return cls(
            enabled_personas=list(enabled) if isinstance(enabled, list) else defaults.enabled_personas,
            selection_mode=mode if mode in SELECTION_MODES else defaults.selection_mode,
            fixed_persona=data.get("fixedPersona") or None,
            last_used_persona_index=index if isinstance(index, int) and index >= 0 else 0,
        )


class SettingsStore(Protocol):
    def load(self) -> PersonaSettings:
        ...

    def save(self, settings: PersonaSettings) -> None:
        ...


class JsonFileSettingsStore:
    """Keeps persona settings in a small JSON file next to the app."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> PersonaSettings:
        if not self.path.exists():
            return PersonaSettings()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Could not read persona settings from %s: %s", self.path, exc)
            return PersonaSettings()
        if not isinstance(data, dict):
            logger.error("Persona settings file %s is not a JSON object", self.path)
            return PersonaSettings()
        return PersonaSettings.from_dict(data)

    def save(self, settings: PersonaSettings) -> None:
        self.path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")


class InMemorySettingsStore:
    def __init__(self, settings: Optional[PersonaSettings] = None):
        self.settings = settings or PersonaSettings()

    def load(self) -> PersonaSettings:
        return self.settings

    def save(self, settings: PersonaSettings) -> None:
        self.settings = settings


def validate_settings_update(current: PersonaSettings, body: Dict[str, Any]) -> PersonaSettings:
    """Apply a partial camelCase update to ``current`` or raise ``ValidationError``."""
    enabled = body.get("enabledPersonas")
    if "enabledPersonas" in body:
        if not isinstance(enabled, list):
            raise ValidationError.invalid_value("enabledPersonas", "Must be an array")
        if not enabled:
            raise ValidationError.invalid_value("enabledPersonas", "At least one persona must be enabled")
        for persona in enabled:
            if not is_valid_persona(persona):
                raise ValidationError.invalid_value(
                    "enabledPersonas",
                    f"Invalid persona type: {persona}. Valid types: {', '.join(persona_ids())}",
                )

    mode = body.get("selectionMode")
    if "selectionMode" in body and mode not in SELECTION_MODES:
        raise ValidationError.invalid_value(
            "selectionMode", f"Valid modes: {', '.join(SELECTION_MODES)}"
        )

    index = body.get("lastUsedPersonaIndex")
    if "lastUsedPersonaIndex" in body:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValidationError.invalid_value("lastUsedPersonaIndex", "Must be a non-negative integer")

    fixed = body.get("fixedPersona")
    if fixed is not None and not is_valid_persona(fixed):
        raise ValidationError.invalid_value("fixedPersona", f"Invalid persona: {fixed}")

    updated = replace(
        current,
        enabled_personas=list(enabled) if enabled is not None else current.enabled_personas,
        selection_mode=mode if mode is not None else current.selection_mode,
        fixed_persona=body["fixedPersona"] if "fixedPersona" in body else current.fixed_persona,
        last_used_persona_index=index if index is not None else current.last_used_persona_index,
    )

    if updated.selection_mode == "fixed":
        if not updated.fixed_persona:
            raise ValidationError.invalid_value(
                "fixedPersona", 'Required when selectionMode is "fixed"'
            )
        if not is_valid_persona(updated.fixed_persona):
            raise ValidationError.invalid_value("fixedPersona", f"Invalid persona: {updated.fixed_persona}")
        if updated.fixed_persona not in updated.enabled_personas:
            raise ValidationError.invalid_value(
                "fixedPersona", "Fixed persona must be in the enabled personas list"
            )

    return updated


def select_persona(
    settings: PersonaSettings, rng: Optional[random.Random] = None
) -> Tuple[Persona, Optional[int]]:
    """Pick the persona for the next call.

    Returns the persona and, in round-robin mode, the index to persist as
    ``last_used_persona_index``.
    """
    rng = rng or random
    enabled = [PERSONAS[p] for p in settings.enabled_personas if p in PERSONAS]
    if not enabled:
        return PERSONAS[DEFAULT_PERSONA], None

    if settings.selection_mode == "fixed":
        if settings.fixed_persona in PERSONAS and settings.fixed_persona in settings.enabled_personas:
            return PERSONAS[settings.fixed_persona], None
        return enabled[0], None

    if settings.selection_mode == "round_robin":
        index = (settings.last_used_persona_index + 1) % len(enabled)
        return enabled[index], index

    return rng.choice(enabled), None


def get_settings_store() -> SettingsStore:
    """FastAPI dependency returning the file-backed store."""
    return JsonFileSettingsStore(app_settings.persona_settings_file)
