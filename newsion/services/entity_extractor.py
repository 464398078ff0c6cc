"""Football team name extraction from free text."""
import re
from typing import List, Optional

KNOWN_TEAMS = {
    'Serie A': [
        'Juventus', 'Milan', 'Inter', 'Napoli', 'Roma', 'Lazio', 'Atalanta',
        'Fiorentina', 'Torino', 'Genoa', 'Sampdoria', 'Bologna', 'Sassuolo',
        'Verona', 'Cagliari', 'Spezia', 'Venezia', 'Salernitana', 'Empoli',
        'Udinese', 'AC Milan', 'Inter Milan', 'AS Roma', 'SS Lazio',
    ],
    'Premier League': [
        'Manchester United', 'Manchester City', 'Liverpool', 'Chelsea', 'Arsenal',
        'Tottenham', 'Leicester City', 'West Ham', 'Everton', 'Leeds United',
        'Aston Villa', 'Newcastle', 'Brighton', 'Crystal Palace', 'Burnley',
        'Southampton', 'Watford', 'Norwich City', 'Brentford', 'Wolves',
    ],
    'La Liga': [
        'Barcelona', 'Real Madrid', 'Atletico Madrid', 'Sevilla', 'Valencia',
        'Villarreal', 'Real Sociedad', 'Athletic Bilbao', 'Real Betis', 'Osasuna',
        'Celta Vigo', 'Espanyol', 'Getafe', 'Cadiz', 'Alaves', 'Mallorca',
        'Granada', 'Levante', 'Elche', 'FC Barcelona',
    ],
    'Bundesliga': [
        'Bayern Munich', 'Borussia Dortmund', 'RB Leipzig', 'Bayer Leverkusen',
        'Eintracht Frankfurt', 'SC Freiburg', 'Union Berlin', 'FC Koln', 'Mainz',
        'Hoffenheim', 'FC Augsburg', 'VfL Wolfsburg', 'VfB Stuttgart', 'Hertha Berlin',
        'VfL Bochum', 'Arminia Bielefeld', 'Greuther Furth', 'Werder Bremen',
    ],
    'Ligue 1': [
        'Paris Saint-Germain', 'PSG', 'Marseille', 'Lyon', 'Monaco', 'Nice',
        'Rennes', 'Strasbourg', 'Lens', 'Lille', 'Nantes', 'Montpellier',
        'Reims', 'Angers', 'Troyes', 'Clermont', 'Lorient', 'Metz', 'Bordeaux', 'Saint-Etienne',
    ],
}

ALL_TEAMS = [team for teams in KNOWN_TEAMS.values() for team in teams]

COMMON_WORDS = {
    'The', 'And', 'Or', 'But', 'In', 'On', 'At', 'To', 'For', 'Of', 'With',
    'By', 'From', 'Up', 'About', 'Into', 'Through', 'During', 'Before', 'After',
    'Above', 'Below', 'Between', 'Among', 'This', 'That', 'These', 'Those',
    'News', 'Sport', 'Football', 'Soccer', 'Match', 'Game', 'Player', 'Team',
    'League', 'Cup', 'Championship', 'Season', 'Goal', 'Goals', 'Win', 'Loss',
    'Draw', 'Points', 'Table', 'Standing', 'Position',
}

TEAM_INDICATORS = ('FC', 'AC', 'AS', 'CF', 'United', 'City', 'Town', 'Rovers',
                   'Wanderers', 'Athletic', 'Real', 'Club')

KNOWN_ACRONYMS = {'PSG', 'FCB', 'BVB', 'RMA', 'ATM', 'LFC', 'AFC', 'CFC', 'MUFC', 'MCFC'}

_TEAM_PATTERNS = [(team, re.compile(rf'\b{re.escape(team)}\b', re.IGNORECASE)) for team in ALL_TEAMS]
CAPITALIZED_RE = re.compile(r'\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,2}\b')
ACRONYM_RE = re.compile(r'\b[A-Z]{2,4}\b')


def _is_likely_team_name(text: str) -> bool:
    if text in COMMON_WORDS:
        return False
    return len(text.split(' ')) >= 2 or any(indicator in text for indicator in TEAM_INDICATORS)


def extract_team_names(text: str) -> List[str]:
    """
    Find team names in text.

    Known teams come first, in list order, then capitalized phrases that
    look like team names, then known acronyms. Duplicates are dropped.
    """
    if not text or not isinstance(text, str):
        return []

    found = []

    def add(name):
        if name not in found:
            found.append(name)

    for team, pattern in _TEAM_PATTERNS:
        if pattern.search(text):
            add(team)

    for match in CAPITALIZED_RE.findall(text):
        if _is_likely_team_name(match):
            add(match)

    for acronym in ACRONYM_RE.findall(text):
        if acronym in KNOWN_ACRONYMS:
            add(acronym)

    return found


def find_primary_team(text: str) -> Optional[str]:
    """First known team in the text, else the first candidate, else None."""
    teams = extract_team_names(text)
    for team in teams:
        if team in ALL_TEAMS:
            return team
    return teams[0] if teams else None


def get_team_league(team: str) -> Optional[str]:
    for league, teams in KNOWN_TEAMS.items():
        if team in teams:
            return league
    return None
