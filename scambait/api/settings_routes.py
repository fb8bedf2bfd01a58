"""Persona selection settings for the dashboard."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from scambait.api.auth import require_dashboard_session
from scambait.personas.catalog import PERSONAS
from scambait.personas.selection import SettingsStore, get_settings_store, validate_settings_update
from scambait.utils.errors import ValidationError
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"], dependencies=[Depends(require_dashboard_session)])


@router.get("")
def get_persona_settings(store: SettingsStore = Depends(get_settings_store)) -> dict:
    return store.load().to_dict()


@router.get("/personas")
def list_personas() -> dict:
    return {"personas": [persona.to_dict() for persona in PERSONAS.values()]}


@router.patch("")
def update_persona_settings(
    body: Any = Body(...),
    store: SettingsStore = Depends(get_settings_store),
) -> dict:
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    updated = validate_settings_update(store.load(), body)
    store.save(updated)
    logger.info(
        "Persona settings updated: mode=%s enabled=%s",
        updated.selection_mode,
        ",".join(updated.enabled_personas),
    )
    return updated.to_dict()
