"""Notification sound files. Only names from the fixed sound table are served."""
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from gtms.config import settings
from gtms.core.constants import NOTIFICATION_SOUNDS
from gtms.core.errors import STATUS_NOT_FOUND, ApiError

router = APIRouter()

_ALLOWED = frozenset(NOTIFICATION_SOUNDS.values())
CACHE_CONTROL = "public, max-age=86400"


@router.get("/sounds/{filename}")
def get_sound(filename: str):
    if filename not in _ALLOWED:
        raise ApiError(STATUS_NOT_FOUND, "SOUND_NOT_FOUND", "Sound file not found")
    path = Path(settings.sounds_dir) / filename
    if not path.is_file():
        raise ApiError(STATUS_NOT_FOUND, "SOUND_NOT_FOUND", "Sound file not found")
    return FileResponse(path, media_type="audio/mpeg", headers={"Cache-Control": CACHE_CONTROL})
