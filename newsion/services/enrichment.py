import logging
from typing import Optional

from newsion.services.entity_extractor import find_primary_team, get_team_league
from newsion.services.standings import StandingsClient, format_standings
from newsion.services.web_search import WebSearch, search_sports_news

logger = logging.getLogger(__name__)


class Enricher:
    """Assemble the context text that goes into a rewrite prompt."""

    def __init__(self, standings: Optional[StandingsClient] = None,
                 search: Optional[WebSearch] = None):
        self.standings = standings or StandingsClient()
        self.search = search or WebSearch()

    def standings_text(self, article: dict) -> str:
        if not self.standings.enabled:
            return ''

        team = find_primary_team(f"{article.get('title', '')} {article.get('content', '')}")
        if not team:
            return ''

        table = self.standings.standings_for_team(team)
        if not table:
            return ''

        league = get_team_league(team) or 'campionat'
        return f"CLASAMENT ACTUAL {league} (echipa principală: {team}):\n" + format_standings(table, highlight=team)

    def enrich(self, article: dict, enable_web_search: bool = False) -> str:
        """Standings and, when enabled, web search results. Never raises."""
        sections = []

        try:
            standings = self.standings_text(article)
        except Exception as e:
            logger.warning(f"Standings enrichment failed for '{article.get('title', '')[:60]}': {e}")
            standings = ''
        if standings:
            sections.append(standings)

        if enable_web_search:
            logger.info(f"Web search for '{article.get('title', '')[:60]}'")
            sections.append(search_sports_news(article.get('title', ''), client=self.search))

        return '\n\n'.join(sections)
