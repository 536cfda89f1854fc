"""
Output languages available for plan generation.
"""

from fastapi import APIRouter
from typing import Dict, List

from tripplanner.core.config import settings
from tripplanner.core.i18n import get_supported_languages

router = APIRouter(tags=["i18n"])


@router.get("/languages", response_model=Dict[str, object])
def list_supported_languages():
    """
    Languages a generated itinerary can be written in.

    Returns:
        {
            "default": "en",
            "languages": [{"code": "en", "name": "English", "native_name": "English"}, ...]
        }
    """
    languages: List[Dict[str, str]] = get_supported_languages()
    return {"default": settings.default_language, "languages": languages}
