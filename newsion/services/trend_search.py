"""Viral topic discovery for Romania and topic context lookups."""
import logging
import random
import re
from typing import List, Optional
from urllib.parse import quote_plus

import feedparser
import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

TRENDS_RSS_URL = 'https://trends.google.com/trending/rss?geo=RO'
GOOGLE_SEARCH_URL = 'https://www.google.com/search'

BROWSER_HEADERS = {
    'User-Agent': ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                   '(KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36'),
    'Accept-Language': 'ro-RO,ro;q=0.9,en-US;q=0.8,en;q=0.7',
}

BACKUP_TOPICS = [
    'Echipa națională de fotbal a României',
    'Inflația în România',
    'Programul Rabla',
    'FCSB în Europa League',
    'Simona Halep revenire tenis',
    'Festivalul Untold Cluj',
    'Alegeri prezidențiale România',
    'Autostrada Transilvania',
    'CFR Cluj rezultate recente',
    'Superliga României clasament',
]

ROMANIAN_CHARS = re.compile(r'[ăîâșț]', re.IGNORECASE)
ROMANIAN_WORDS = re.compile(r'\b(și|sau|pentru|din|România|Romanian)\b', re.IGNORECASE)
ROMANIAN_PLACES = re.compile(
    r'\b(București|Cluj|Timișoara|Iași|Constanța|Sibiu|Oradea|Craiova|Brașov)\b', re.IGNORECASE
)


def is_romanian_topic(topic: str) -> bool:
    return bool(ROMANIAN_CHARS.search(topic) or ROMANIAN_WORDS.search(topic)
                or ROMANIAN_PLACES.search(topic))


def get_romanian_trends(timeout: int = 15) -> List[str]:
    """Top 10 titles of the Google Trends feed for Romania, [] on failure."""
    try:
        response = requests.get(TRENDS_RSS_URL, headers=BROWSER_HEADERS, timeout=timeout)
        response.raise_for_status()
        feed = feedparser.parse(response.content)
    except Exception as e:
        logger.warning(f"Could not fetch Romanian trends: {e}")
        return []

    topics = []
    for entry in feed.entries:
        title = (entry.get('title') or '').strip()
        if title and 'Daily Search Trends' not in title:
            topics.append(title)

    logger.info(f"Found {len(topics)} trending topics for Romania")
    return topics[:10]


def get_viral_topics(count: int = 5) -> List[str]:
    """Romanian-looking trending topics, or a shuffled backup list."""
    trends = get_romanian_trends()
    romanian = [topic for topic in trends if is_romanian_topic(topic)]
    if romanian:
        return romanian[:count]

    logger.warning("No Romanian trends available, using backup topics")
    topics = list(BACKUP_TOPICS)
    random.shuffle(topics)
    return topics[:count]


def _google_soup(query: str, news: bool = False, timeout: int = 15) -> BeautifulSoup:
    url = f"{GOOGLE_SEARCH_URL}?q={quote_plus(query)}"
    if news:
        url += '&tbm=nws'
    response = requests.get(url, headers=BROWSER_HEADERS, timeout=timeout)
    response.raise_for_status()
    return BeautifulSoup(response.text, 'html.parser')


def _text(node) -> str:
    return node.get_text(' ', strip=True) if node else ''


def search_recent_news(topic: str, count: int = 3) -> str:
    """Recent news results about a topic, formatted for a prompt."""
    try:
        soup = _google_soup(f"{topic} România știri recente", news=True)
    except Exception as e:
        logger.warning(f"News search for '{topic}' failed: {e}")
        return f'Nu s-au putut căuta știri despre "{topic}" din cauza unei erori.'

    results = []
    for block in soup.select('.SoaBEf'):
        title = _text(block.select_one('.mCBkyc'))
        snippet = _text(block.select_one('.GI74Re'))
        if not (title and snippet):
            continue
        link = block.select_one('a.WlydOe')
        results.append({
            'title': title,
            'snippet': snippet,
            'source': _text(block.select_one('.NUnG9d')),
            'url': link.get('href', '') if link else '',
        })
        if len(results) >= count:
            break

    text = f'ȘTIRI RECENTE DESPRE "{topic}":\n\n'
    if not results:
        return text + 'Nu s-au găsit știri recente relevante despre acest subiect.\n'

    for index, result in enumerate(results, start=1):
        text += (f"ȘTIRE #{index}:\nTitlu: {result['title']}\nSursă: {result['source']}\n"
                 f"Descriere: {result['snippet']}\nURL: {result['url']}\n\n")
    return text


def _answer_box(topic: str) -> Optional[str]:
    soup = _google_soup(f"{topic} România context informații")

    context = ''
    snippet = _text(soup.select_one('.hgKElc'))
    if snippet:
        context += f"REZUMAT GOOGLE:\n{snippet}\n\n"

    knowledge_title = _text(soup.select_one('.qrShPb span'))
    knowledge_desc = _text(soup.select_one('.kno-rdesc span'))
    if knowledge_title or knowledge_desc:
        context += 'INFORMAȚII DE BAZĂ:\n'
        if knowledge_title:
            context += f"{knowledge_title}\n"
        if knowledge_desc:
            context += f"{knowledge_desc}\n\n"

    return context or None


def topic_context(topic: str) -> str:
    """Answer box plus recent news for a topic. Never raises."""
    news = search_recent_news(topic, 3)
    try:
        context = _answer_box(topic)
    except Exception as e:
        logger.warning(f"Context lookup for '{topic}' failed: {e}")
        return f'Nu s-au putut obține informații de context despre "{topic}" din cauza unei erori.'

    combined = f'INFORMAȚII DESPRE SUBIECTUL: "{topic}"\n\n'
    if context:
        combined += f"CONTEXT GENERAL:\n{context}\n"
    return combined + news
