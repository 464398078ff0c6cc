"""
Web search with a provider fallback chain.

Providers are tried in order: Google Custom Search, SerpAPI, Bing, then
Wikipedia opensearch with a static note. Each provider returns formatted
text or None; search never raises.
"""
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional

import requests

logger = logging.getLogger(__name__)

GOOGLE_CSE_URL = 'https://www.googleapis.com/customsearch/v1'
SERPAPI_URL = 'https://serpapi.com/search.json'
BING_URL = 'https://api.bing.microsoft.com/v7.0/search'
WIKIPEDIA_URL = 'https://ro.wikipedia.org/w/api.php'

STATIC_FILLER = (
    "Notă: rezultatele de mai sus provin din surse enciclopedice. Pentru scoruri, "
    "transferuri și declarații de ultimă oră verificați site-urile oficiale ale "
    "competițiilor și ale cluburilor implicate."
)


def no_results_message(query: str) -> str:
    return f'Nu s-au putut obține rezultate de căutare pentru "{query}".'


def format_results(query: str, results: List[dict], source: str = 'căutare web') -> str:
    """Number results as ``1. name / snippet / Sursă: url`` blocks."""
    text = f'Informații actuale despre "{query}" ({source}):\n\n'
    for index, result in enumerate(results, start=1):
        text += f"{index}. {result['name']}\n"
        text += f"   {result['snippet']}\n"
        text += f"   Sursă: {result['url']}\n\n"
    return text


class WebSearch:
    """Layered web search client configured from the environment."""

    def __init__(self, timeout: int = 10):
        self.timeout = timeout
        self.google_key = os.getenv('GOOGLE_SEARCH_API_KEY')
        self.google_cx = os.getenv('GOOGLE_SEARCH_ENGINE_ID')
        self.serpapi_key = os.getenv('SERPAPI_KEY')
        self.bing_key = os.getenv('BING_SEARCH_API_KEY')

    @property
    def providers(self) -> List[Callable[[str, int], Optional[str]]]:
        return [self._google, self._serpapi, self._bing, self._wikipedia]

    def search(self, query: str, count: int = 5) -> str:
        for provider in self.providers:
            try:
                result = provider(query, count)
            except Exception as e:
                logger.warning(f"Search provider {provider.__name__} failed for '{query}': {e}")
                continue
            if result:
                return result

        logger.warning(f"All search providers failed for '{query}'")
        return no_results_message(query)

    def _google(self, query: str, count: int) -> Optional[str]:
        if not (self.google_key and self.google_cx):
            return None
        response = requests.get(GOOGLE_CSE_URL, params={
            'key': self.google_key,
            'cx': self.google_cx,
            'q': query,
            'num': min(count, 10),
            'lr': 'lang_ro',
        }, timeout=self.timeout)
        response.raise_for_status()
        items = response.json().get('items') or []
        if not items:
            return None
        return format_results(query, [
            {'name': i.get('title', ''), 'snippet': i.get('snippet', ''), 'url': i.get('link', '')}
            for i in items[:count]
        ])

    def _serpapi(self, query: str, count: int) -> Optional[str]:
        if not self.serpapi_key:
            return None
        response = requests.get(SERPAPI_URL, params={
            'q': query,
            'api_key': self.serpapi_key,
            'num': count,
            'hl': 'ro',
        }, timeout=self.timeout)
        response.raise_for_status()
        items = response.json().get('organic_results') or []
        if not items:
            return None
        return format_results(query, [
            {'name': i.get('title', ''), 'snippet': i.get('snippet', ''), 'url': i.get('link', '')}
            for i in items[:count]
        ])

    def _bing(self, query: str, count: int) -> Optional[str]:
        if not self.bing_key:
            return None
        response = requests.get(
            BING_URL,
            params={'q': query, 'count': count, 'freshness': 'Day'},
            headers={'Ocp-Apim-Subscription-Key': self.bing_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        pages = (response.json().get('webPages') or {}).get('value') or []
        if not pages:
            return None
        return format_results(query, [
            {'name': p.get('name', ''), 'snippet': p.get('snippet', ''), 'url': p.get('url', '')}
            for p in pages[:count]
        ])

    def _wikipedia(self, query: str, count: int) -> Optional[str]:
        response = requests.get(WIKIPEDIA_URL, params={
            'action': 'opensearch',
            'search': query,
            'limit': count,
            'namespace': 0,
            'format': 'json',
        }, headers={'User-Agent': 'newsion/1.0'}, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        # [query, titles, descriptions, urls]
        if len(data) < 4 or not data[1]:
            return None
        results = [
            {'name': title, 'snippet': description or title, 'url': url}
            for title, description, url in zip(data[1], data[2], data[3])
        ]
        return format_results(query, results, source='Wikipedia') + STATIC_FILLER


def search_web(query: str, count: int = 5, client: Optional[WebSearch] = None) -> str:
    return (client or WebSearch()).search(query, count)


def search_sports_news(title: str, client: Optional[WebSearch] = None) -> str:
    """Search for current context about a sports headline."""
    clean_title = re.sub(r'\([^)]*\)', '', title).strip()
    return search_web(f"{clean_title} actualitate știri sport", 3, client=client)


def targeted_search(queries: List[str], client: Optional[WebSearch] = None, max_workers: int = 4) -> str:
    """Run several queries in parallel (2 results each) and join the blocks in query order."""
    queries = [q for q in queries if q and q.strip()]
    if not queries:
        return ''

    client = client or WebSearch()
    logger.info(f"Running {len(queries)} targeted searches")
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(queries)))) as executor:
        results = list(executor.map(lambda q: client.search(q, 2), queries))

    combined = f"REZULTATE CĂUTARE WEB ({datetime.now().strftime('%d.%m.%Y')}):\n\n"
    for query, result in zip(queries, results):
        combined += f'PENTRU CEREREA: "{query}"\n{result}\n---\n\n'
    return combined
