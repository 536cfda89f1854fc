"""
Output languages for generated itineraries.
The LLM is instructed in English and told which language to write in,
so each code maps to the English name of the language.
"""

from typing import Dict, List, Optional
from enum import Enum

from tripplanner.core.config import settings


class Language(str, Enum):
    """Supported output languages."""
    EN = "en"
    PL = "pl"
    DE = "de"
    FR = "fr"
    ES = "es"
    IT = "it"
    PT = "pt"


SUPPORTED_LANGS = {lang.value for lang in Language}

_LANGUAGES: Dict[str, Dict[str, str]] = {
    "en": {"name": "English", "native_name": "English"},
    "pl": {"name": "Polish", "native_name": "Polski"},
    "de": {"name": "German", "native_name": "Deutsch"},
    "fr": {"name": "French", "native_name": "Français"},
    "es": {"name": "Spanish", "native_name": "Español"},
    "it": {"name": "Italian", "native_name": "Italiano"},
    "pt": {"name": "Portuguese", "native_name": "Português"},
}


def resolve_language(code: Optional[str]) -> str:
    """Normalise a language code, falling back to the configured default."""
    if code:
        code = code.strip().lower().split("-")[0]
        if code in SUPPORTED_LANGS:
            return code
    default = settings.default_language.lower()
    return default if default in SUPPORTED_LANGS else Language.EN.value


def language_name(code: Optional[str]) -> str:
    """English name of the language used inside the LLM prompt."""
    return _LANGUAGES[resolve_language(code)]["name"]


def get_supported_languages() -> List[Dict[str, str]]:
    """Get list of supported languages with metadata."""
    return [{"code": code, **meta} for code, meta in _LANGUAGES.items()]
