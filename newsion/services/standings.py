"""football-data.org standings client."""
import logging
import os
from typing import List, Optional

import requests

from newsion.services.ttl_cache import TTLCache, MinIntervalThrottle

logger = logging.getLogger(__name__)

API_BASE = 'https://api.football-data.org/v4'

COMPETITION_CODES = {
    'SERIE_A': 'SA',
    'PREMIER_LEAGUE': 'PL',
    'LA_LIGA': 'PD',
    'BUNDESLIGA': 'BL1',
    'LIGUE_1': 'FL1',
    'CHAMPIONS_LEAGUE': 'CL',
    'EUROPA_LEAGUE': 'EL',
}

# Substring keywords, checked in this order
_COMPETITION_KEYWORDS = [
    ('SA', ['juventus', 'milan', 'inter', 'napoli', 'roma', 'lazio', 'atalanta', 'fiorentina',
            'torino', 'genoa', 'sampdoria', 'bologna', 'sassuolo', 'verona', 'cagliari', 'spezia',
            'venezia', 'salernitana', 'empoli', 'udinese']),
    ('PL', ['manchester', 'liverpool', 'chelsea', 'arsenal', 'tottenham', 'leicester', 'west ham',
            'everton', 'leeds', 'aston villa', 'newcastle', 'brighton', 'crystal palace', 'burnley',
            'southampton', 'watford', 'norwich', 'brentford']),
    ('PD', ['barcelona', 'real madrid', 'atletico', 'sevilla', 'valencia', 'villarreal',
            'real sociedad', 'athletic bilbao', 'betis', 'osasuna', 'celta', 'espanyol', 'getafe',
            'cadiz', 'alaves', 'mallorca', 'granada', 'levante', 'elche']),
    ('BL1', ['bayern', 'dortmund', 'leipzig', 'leverkusen', 'frankfurt', 'freiburg', 'union berlin',
             'koln', 'mainz', 'hoffenheim', 'augsburg', 'wolfsburg', 'stuttgart', 'hertha', 'bochum',
             'arminia', 'greuther furth', 'bremen']),
]


def competition_code_for_team(team: str) -> Optional[str]:
    name = (team or '').lower()
    for code, keywords in _COMPETITION_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return code
    return None


class StandingsClient:
    """
    Standings lookups with a response cache and call spacing.

    football-data.org allows 10 calls per minute on the free tier, hence
    the 6 second default interval. Cache and throttle are per instance,
    so replicas do not share them.
    """

    def __init__(self, token: Optional[str] = None, cache: Optional[TTLCache] = None,
                 throttle: Optional[MinIntervalThrottle] = None, timeout: int = 15):
        self.token = token if token is not None else os.getenv('FOOTBALL_DATA_TOKEN')
        self.cache = cache or TTLCache(ttl=300)
        self.throttle = throttle or MinIntervalThrottle(6.0)
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    def _get(self, url: str) -> dict:
        cached = self.cache.get(url)
        if cached is not None:
            logger.debug(f"Standings cache hit for {url}")
            return cached

        if not self.token:
            raise RuntimeError("FOOTBALL_DATA_TOKEN is not set")

        waited = self.throttle.wait()
        if waited:
            logger.debug(f"Waited {waited:.1f}s before calling football-data.org")

        response = requests.get(
            url,
            headers={'X-Auth-Token': self.token, 'Accept': 'application/json'},
            timeout=self.timeout,
        )
        if response.status_code == 429:
            raise RuntimeError("football-data.org rate limit exceeded")
        response.raise_for_status()

        data = response.json()
        self.cache.set(url, data)
        return data

    def fetch_competition_standings(self, code: str) -> List[dict]:
        """Return [{position, team, playedGames, points}] or [] on any failure."""
        url = f"{API_BASE}/competitions/{code}/standings"
        try:
            data = self._get(url)
        except Exception as e:
            logger.warning(f"Standings lookup for {code} failed: {e}")
            return []

        standings = data.get('standings') or []
        if not standings or not standings[0].get('table'):
            logger.warning(f"No standings table for competition {code}")
            return []

        return [
            {
                'position': row.get('position'),
                'team': (row.get('team') or {}).get('name'),
                'playedGames': row.get('playedGames'),
                'points': row.get('points'),
            }
            for row in standings[0]['table']
        ]

    def standings_for_team(self, team: str) -> List[dict]:
        code = competition_code_for_team(team)
        if not code:
            return []
        return self.fetch_competition_standings(code)


def format_standings(standings: List[dict], highlight: Optional[str] = None, limit: int = 10) -> str:
    """Render a standings table as prompt text."""
    if not standings:
        return ''
    lines = []
    for row in standings[:limit]:
        marker = ' <--' if highlight and highlight.lower() in (row['team'] or '').lower() else ''
        lines.append(f"{row['position']}. {row['team']} - {row['points']} puncte "
                     f"({row['playedGames']} meciuri){marker}")
    return '\n'.join(lines)
