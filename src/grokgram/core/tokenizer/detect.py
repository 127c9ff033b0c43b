from typing import Dict, Optional

from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

# Deterministic results
DetectorFactory.seed = 0

# langdetect returns ISO 639-1 codes, rules are keyed by ISO 639-3
ISO_639_3: Dict[str, str] = {
    "en": "eng",
    "de": "deu",
    "ja": "jpn",
}


def detect_language(text: str) -> Optional[str]:
    """Guesses the ISO 639-3 tag of ``text``.

    Returns ``None`` when nothing can be detected (e.g. no letters at all)
    or the detected language has no known tag.
    """
    try:
        code = detect(text)
    except LangDetectException:
        return None
    return ISO_639_3.get(code)
