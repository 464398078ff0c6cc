"""Machine translation through Google's translateHtml endpoint."""
import logging
import os
import re
from typing import Optional

import requests

logger = logging.getLogger(__name__)

TRANSLATE_URL = 'https://translate-pa.googleapis.com/v1/translateHtml'

# Romanian alphabet, digits and plain punctuation only
ROMANIAN_TEXT = re.compile(r'^[a-zA-ZĂăÂâÎîȘșȚț0-9\s.,!?()-]+$')


def looks_romanian(text: str) -> bool:
    """Cheap check used to skip translating stored articles on read."""
    if not text:
        return True
    return bool(ROMANIAN_TEXT.match(text))


class Translator:
    """Translate text; any failure returns the input unchanged."""

    def __init__(self, api_key: Optional[str] = None, timeout: int = 20):
        self.api_key = api_key if api_key is not None else os.getenv('GOOGLE_TRANSLATE_API_KEY')
        self.timeout = timeout

    def translate(self, text: str, target_lang: str = 'ro') -> str:
        if not text:
            return ''
        if not self.api_key:
            logger.debug("GOOGLE_TRANSLATE_API_KEY not set, skipping translation")
            return text

        try:
            response = requests.post(
                TRANSLATE_URL,
                headers={
                    'Content-Type': 'application/json+protobuf',
                    'X-Goog-API-Key': self.api_key,
                },
                json=[[[text], 'auto', target_lang], 'wt_lib'],
                timeout=self.timeout,
            )
            if not response.ok:
                logger.warning(f"Translation failed with status {response.status_code}")
                return text

            data = response.json()
            return (data and data[0] and data[0][0]) or text
        except Exception as e:
            logger.warning(f"Translation error: {e}")
            return text

    def translate_item(self, item: dict, target_lang: str = 'ro') -> dict:
        """Return a copy of a feed item with title and content translated."""
        return {
            **item,
            'title': self.translate(item.get('title', ''), target_lang),
            'content': self.translate(item.get('content', ''), target_lang),
        }
