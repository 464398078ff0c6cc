import json
import logging
import os
import sys
from datetime import datetime, timedelta
from unittest.mock import patch, MagicMock

import pytest
import requests

from newsion import create_app, db
from newsion.models import Article, Origin
from newsion.models.article import regenerated_key, utcnow
from newsion.logging_setup import JsonFormatter, configure_logging
from newsion.scheduler import init_scheduler
from newsion.services import ArticleStore, FeedFetcher, LLMClientFactory, RSSParser, RewriteGenerator, Translator
from newsion.services.enrichment import Enricher
from newsion.services.entity_extractor import extract_team_names, find_primary_team, get_team_league
from newsion.services.errors import GenerationError, ProviderNotConfigured, ScrapeError
from newsion.services.feed_fetcher import cache_busted, sort_latest
from newsion.services.rewrite_generator import temporal_context, source_domain
from newsion.services.standings import StandingsClient, competition_code_for_team, format_standings
from newsion.services.translator import looks_romanian
from newsion.services.ttl_cache import MinIntervalThrottle, TTLCache
from newsion.services.web_scraper import scrape_article
from newsion.services.web_search import (
    BING_URL, GOOGLE_CSE_URL, SERPAPI_URL, STATIC_FILLER, WIKIPEDIA_URL, WebSearch, no_results_message,
    search_sports_news, targeted_search,
)
from newsion.services.trend_search import (
    BACKUP_TOPICS, get_romanian_trends, get_viral_topics, is_romanian_topic, search_recent_news,
    topic_context,
)

SAMPLE_RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>Test Feed</title>
<link>https://example.com</link>
<item>
<title>Primo titolo</title>
<link>https://example.com/1</link>
<description>&lt;p&gt;Testo &lt;b&gt;uno&lt;/b&gt;&lt;/p&gt;</description>
<pubDate>Mon, 06 Jan 2025 10:00:00 GMT</pubDate>
<enclosure url="https://example.com/1.jpg" type="image/jpeg" length="0"/>
</item>
<item>
<title>Secondo titolo</title>
<link>https://example.com/2</link>
<description>Testo due</description>
<pubDate>Sun, 05 Jan 2025 10:00:00 GMT</pubDate>
</item>
</channel>
</rss>"""


@pytest.fixture
def app():
    """Create test application."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def make_article(**overrides):
    data = {
        'title': 'Titlu',
        'content': 'Conținut',
        'source_url': 'https://example.com/a',
        'origin': Origin.RSS,
        'pub_date': datetime(2025, 1, 6, 10, 0),
    }
    data.update(overrides)
    return ArticleStore.insert(data)


class TestRSSParser:
    def test_parse_valid_feed(self):
        """Test items are normalized with stripped HTML, images and UTC dates."""
        fallback = datetime(2025, 2, 1)
        result = RSSParser.parse(SAMPLE_RSS, fallback_date=fallback)

        assert result['feed']['title'] == 'Test Feed'
        assert len(result['items']) == 2

        first = result['items'][0]
        assert first['title'] == 'Primo titolo'
        assert first['content'] == 'Testo uno'
        assert first['source_url'] == 'https://example.com/1'
        assert first['image_url'] == 'https://example.com/1.jpg'
        assert first['pub_date'] == datetime(2025, 1, 6, 10, 0)
        assert result['items'][1]['image_url'] == ''

    def test_missing_date_uses_fallback(self):
        """Test items without a date get the fallback date."""
        document = SAMPLE_RSS.replace(b'<pubDate>Sun, 05 Jan 2025 10:00:00 GMT</pubDate>', b'')
        fallback = datetime(2025, 2, 1)

        result = RSSParser.parse(document, fallback_date=fallback)

        assert result['items'][1]['pub_date'] == fallback

    @patch('newsion.services.rss_parser.feedparser.parse')
    def test_parse_invalid_feed(self, mock_parse):
        """Test parsing an invalid feed raises error."""
        mock_parse.return_value = MagicMock(
            bozo=True,
            bozo_exception=Exception('Parse error'),
            entries=[]
        )

        with pytest.raises(ValueError, match='Failed to parse feed'):
            RSSParser.parse(b'<rss')


class TestFeedFetcher:
    def test_cache_busted(self):
        """Test the timestamp parameter is appended with the right separator."""
        assert cache_busted('https://a.ro/rss', 123) == 'https://a.ro/rss?_t=123'
        assert cache_busted('https://a.ro/rss?x=1', 123) == 'https://a.ro/rss?x=1&_t=123'

    @patch('newsion.services.feed_fetcher.requests.get')
    def test_fetch_all_skips_failing_feeds(self, mock_get):
        """Test a timeout and a malformed feed do not fail the batch."""
        def fake_get(url, **kwargs):
            if url.startswith('https://good.ro/rss'):
                return MagicMock(content=SAMPLE_RSS)
            if url.startswith('https://slow.ro/rss'):
                raise requests.Timeout('timed out')
            return MagicMock(content=b'<html><body>not a feed')

        mock_get.side_effect = fake_get

        items = FeedFetcher.fetch_all(
            ['https://slow.ro/rss', 'https://good.ro/rss', 'https://broken.ro/rss'], max_workers=3)

        assert [i['source_url'] for i in items] == ['https://example.com/1', 'https://example.com/2']
        called = [c.args[0] for c in mock_get.call_args_list]
        assert all('_t=' in url for url in called)

    @patch('newsion.services.feed_fetcher.requests.get')
    def test_truncated_feed_contributes_nothing(self, mock_get):
        """Test a feed that is not well-formed XML is skipped entirely."""
        truncated = (b'<?xml version="1.0"?><rss version="2.0"><channel><title>Rotto</title>'
                     b'<item><title>Broken</title><link>https://broken.ro/1</link></titl></item>'
                     b'<item><title>Broken2<link>https://broken.ro/2')

        def fake_get(url, **kwargs):
            if url.startswith('https://good.ro/rss'):
                return MagicMock(content=SAMPLE_RSS)
            return MagicMock(content=truncated)

        mock_get.side_effect = fake_get

        items = FeedFetcher.fetch_all(['https://broken.ro/rss', 'https://good.ro/rss'], max_workers=2)

        assert [i['source_url'] for i in items] == ['https://example.com/1', 'https://example.com/2']

    @patch('newsion.services.feed_fetcher.requests.get')
    def test_entries_without_link_dropped(self, mock_get):
        """Test items with no link never become feed items."""
        mock_get.return_value = MagicMock(content=SAMPLE_RSS.replace(
            b'<link>https://example.com/1</link>', b''))

        items = FeedFetcher.fetch_feed('https://good.ro/rss')

        assert [i['source_url'] for i in items] == ['https://example.com/2']

    @patch('newsion.services.feed_fetcher.requests.get')
    def test_http_error_returns_empty(self, mock_get):
        """Test a non-2xx feed yields no items."""
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError('503')
        mock_get.return_value = response

        assert FeedFetcher.fetch_feed('https://a.ro/rss') == []

    def test_fetch_all_no_urls(self):
        """Test an empty feed list returns no items."""
        assert FeedFetcher.fetch_all([]) == []

    @patch('newsion.services.feed_fetcher.FeedFetcher.fetch_all')
    def test_fetch_latest_sorts_and_limits(self, mock_fetch_all):
        """Test newest first with the limit applied after sorting."""
        mock_fetch_all.return_value = [
            {'title': 'old', 'pub_date': datetime(2025, 1, 1)},
            {'title': 'new', 'pub_date': datetime(2025, 1, 3)},
            {'title': 'mid', 'pub_date': datetime(2025, 1, 2)},
        ]

        items = FeedFetcher.fetch_latest(['https://a.ro/rss'], limit=2)

        assert [i['title'] for i in items] == ['new', 'mid']

    def test_sort_latest_stable_and_idempotent(self):
        """Test ties keep input order and sorting twice changes nothing."""
        same = datetime(2025, 1, 2)
        items = [
            {'title': 'a', 'pub_date': same},
            {'title': 'b', 'pub_date': datetime(2025, 1, 3)},
            {'title': 'c', 'pub_date': same},
        ]

        once = sort_latest(items)

        assert [i['title'] for i in once] == ['b', 'a', 'c']
        assert sort_latest(once) == once


class TestTranslator:
    def test_no_key_returns_input(self):
        """Test translation is skipped without an API key."""
        with patch('newsion.services.translator.requests.post') as mock_post:
            assert Translator(api_key='').translate('Ciao', 'ro') == 'Ciao'
            mock_post.assert_not_called()

    def test_empty_text(self):
        """Test empty text translates to an empty string."""
        assert Translator(api_key='key').translate('', 'ro') == ''

    @patch('newsion.services.translator.requests.post')
    def test_success(self, mock_post):
        """Test the translated text is taken from the first cell."""
        mock_post.return_value = MagicMock(ok=True)
        mock_post.return_value.json.return_value = [['Salut'], ['it']]

        assert Translator(api_key='key').translate('Ciao', 'ro') == 'Salut'
        assert mock_post.call_args.kwargs['json'] == [[['Ciao'], 'auto', 'ro'], 'wt_lib']
        assert mock_post.call_args.kwargs['headers']['X-Goog-API-Key'] == 'key'

    @patch('newsion.services.translator.requests.post')
    def test_non_2xx_returns_input(self, mock_post):
        """Test a failed response leaves the text untouched."""
        mock_post.return_value = MagicMock(ok=False, status_code=403)

        assert Translator(api_key='key').translate('Ciao', 'ro') == 'Ciao'

    @patch('newsion.services.translator.requests.post')
    def test_exception_returns_input(self, mock_post):
        """Test a network error leaves the text untouched."""
        mock_post.side_effect = requests.ConnectionError('down')

        assert Translator(api_key='key').translate('Ciao', 'ro') == 'Ciao'

    def test_translate_item_keeps_other_fields(self):
        """Test translate_item copies the item and translates text fields."""
        translator = Translator(api_key='key')
        item = {'title': 'Ciao', 'content': 'Mondo', 'source_url': 'https://a.ro/1'}

        with patch.object(translator, 'translate', side_effect=lambda text, lang: text.upper()):
            result = translator.translate_item(item, 'ro')

        assert result == {'title': 'CIAO', 'content': 'MONDO', 'source_url': 'https://a.ro/1'}
        assert item['title'] == 'Ciao'

    def test_looks_romanian(self):
        """Test the Romanian character check."""
        assert looks_romanian('Știri din România, azi!')
        assert looks_romanian('')
        assert not looks_romanian('La partita è finita')
        assert not looks_romanian('Victoria: 2-0')


class TestTTLCache:
    def test_entries_expire(self):
        """Test an entry lives strictly less than the TTL."""
        now = [0.0]
        cache = TTLCache(ttl=300, clock=lambda: now[0])
        cache.set('k', {'v': 1})

        now[0] = 299.9
        assert cache.get('k') == {'v': 1}

        now[0] = 300.0
        assert cache.get('k') is None
        assert len(cache) == 0

    def test_clear(self):
        """Test clear drops every entry."""
        cache = TTLCache()
        cache.set('a', 1)
        cache.clear()
        assert cache.get('a') is None


class TestMinIntervalThrottle:
    def test_spacing(self):
        """Test calls are spaced by the interval and the first call is free."""
        now = [100.0]
        sleep = MagicMock()
        throttle = MinIntervalThrottle(6.0, clock=lambda: now[0], sleep=sleep)

        assert throttle.wait() == 0.0
        now[0] = 101.0
        assert throttle.wait() == 5.0
        sleep.assert_called_once_with(5.0)

        now[0] = 120.0
        assert throttle.wait() == 0.0
        assert sleep.call_count == 1


class TestEntityExtractor:
    def test_known_teams(self):
        """Test known teams are found in order."""
        teams = extract_team_names('Juventus beat Torino in the derby')
        assert teams[:2] == ['Juventus', 'Torino']

    def test_primary_team_and_league(self):
        """Test the primary team is the first known one."""
        team = find_primary_team('Real Madrid wins against Getafe')
        assert team == 'Real Madrid'
        assert get_team_league(team) == 'La Liga'

    def test_candidate_phrases(self):
        """Test unknown multi-word capitalized phrases are candidates."""
        assert 'Dinamo Bucuresti' in extract_team_names('Dinamo Bucuresti a castigat')

    def test_empty(self):
        """Test empty or invalid input."""
        assert extract_team_names('') == []
        assert extract_team_names(None) == []
        assert find_primary_team('') is None


class TestStandings:
    TABLE = {
        'standings': [{
            'table': [
                {'position': 1, 'team': {'name': 'Juventus FC'}, 'playedGames': 20, 'points': 50},
                {'position': 2, 'team': {'name': 'FC Internazionale Milano'}, 'playedGames': 20, 'points': 48},
            ]
        }]
    }

    def make_client(self, token='token'):
        return StandingsClient(
            token=token,
            throttle=MinIntervalThrottle(6.0, clock=lambda: 0.0, sleep=MagicMock()),
        )

    def test_competition_codes(self):
        """Test team names map to competition codes."""
        assert competition_code_for_team('Juventus') == 'SA'
        assert competition_code_for_team('Manchester City') == 'PL'
        assert competition_code_for_team('Real Madrid') == 'PD'
        assert competition_code_for_team('Bayern Munich') == 'BL1'
        assert competition_code_for_team('Universitatea Craiova') is None

    @patch('newsion.services.standings.requests.get')
    def test_fetch_is_cached(self, mock_get):
        """Test the second lookup is served from the cache."""
        mock_get.return_value = MagicMock(status_code=200)
        mock_get.return_value.json.return_value = self.TABLE
        client = self.make_client()

        first = client.fetch_competition_standings('SA')
        second = client.fetch_competition_standings('SA')

        assert first == second
        assert first[0] == {'position': 1, 'team': 'Juventus FC', 'playedGames': 20, 'points': 50}
        assert mock_get.call_count == 1
        assert mock_get.call_args.kwargs['headers']['X-Auth-Token'] == 'token'

    @patch('newsion.services.standings.requests.get')
    def test_rate_limited_returns_empty(self, mock_get):
        """Test a 429 answer yields no standings."""
        mock_get.return_value = MagicMock(status_code=429)

        assert self.make_client().fetch_competition_standings('SA') == []

    @patch('newsion.services.standings.requests.get')
    def test_no_token(self, mock_get):
        """Test no request is made without a token."""
        client = self.make_client(token='')

        assert not client.enabled
        assert client.fetch_competition_standings('SA') == []
        mock_get.assert_not_called()

    def test_format_standings_highlights_team(self):
        """Test the highlighted team is marked."""
        rows = [{'position': 1, 'team': 'Juventus FC', 'playedGames': 20, 'points': 50}]

        text = format_standings(rows, highlight='Juventus')

        assert text == '1. Juventus FC - 50 puncte (20 meciuri) <--'


class TestWebSearch:
    def make_client(self, **keys):
        client = WebSearch()
        client.google_key = keys.get('google_key')
        client.google_cx = keys.get('google_cx')
        client.serpapi_key = keys.get('serpapi_key')
        client.bing_key = keys.get('bing_key')
        return client

    @patch('newsion.services.web_search.requests.get')
    def test_falls_back_to_next_provider(self, mock_get):
        """Test a failing provider hands over to the next configured one."""
        def fake_get(url, **kwargs):
            if url == GOOGLE_CSE_URL:
                raise requests.ConnectionError('down')
            if url == BING_URL:
                response = MagicMock()
                response.json.return_value = {'webPages': {'value': [
                    {'name': 'Rezultat', 'snippet': 'Detalii', 'url': 'https://x.ro/1'},
                ]}}
                return response
            raise AssertionError(f'unexpected call to {url}')

        mock_get.side_effect = fake_get
        client = self.make_client(google_key='g', google_cx='cx', bing_key='b')

        result = client.search('Juventus', 3)

        assert '1. Rezultat\n   Detalii\n   Sursă: https://x.ro/1' in result

    @patch('newsion.services.web_search.requests.get')
    def test_all_providers_fail(self, mock_get):
        """Test the apologetic message when nothing answers."""
        mock_get.side_effect = requests.ConnectionError('down')

        result = self.make_client().search('Juventus')

        assert result == no_results_message('Juventus')

    @patch('newsion.services.web_search.requests.get')
    def test_serpapi_organic_results(self, mock_get):
        """Test SerpAPI organic results are formatted when it is the first configured tier."""
        response = MagicMock()
        response.json.return_value = {'organic_results': [
            {'title': 'Derby', 'snippet': 'Milan - Inter 1-1', 'link': 'https://s.ro/derby'},
            {'title': 'Altul', 'snippet': 'Nu apare', 'link': 'https://s.ro/altul'},
        ]}
        mock_get.return_value = response

        result = self.make_client(serpapi_key='s').search('derby', 1)

        assert result == ('Informații actuale despre "derby" (căutare web):\n\n'
                          '1. Derby\n   Milan - Inter 1-1\n   Sursă: https://s.ro/derby\n\n')
        assert mock_get.call_args.args[0] == SERPAPI_URL
        assert mock_get.call_args.kwargs['params']['api_key'] == 's'

    @patch('newsion.services.web_search.requests.get')
    def test_wikipedia_without_keys(self, mock_get):
        """Test Wikipedia answers when no key is configured and adds the filler note."""
        response = MagicMock()
        response.json.return_value = [
            'Juventus', ['Juventus'], ['Club italian'], ['https://ro.wikipedia.org/wiki/Juventus'],
        ]
        mock_get.return_value = response

        result = self.make_client().search('Juventus')

        assert '(Wikipedia)' in result
        assert '1. Juventus\n   Club italian\n   Sursă: https://ro.wikipedia.org/wiki/Juventus' in result
        assert result.endswith(STATIC_FILLER)
        mock_get.assert_called_once()
        assert mock_get.call_args.args[0] == WIKIPEDIA_URL

    @patch('newsion.services.web_search.requests.get')
    def test_wikipedia_no_titles(self, mock_get):
        """Test an empty Wikipedia answer ends in the apologetic message."""
        response = MagicMock()
        response.json.return_value = ['Xyz', [], [], []]
        mock_get.return_value = response

        assert self.make_client().search('Xyz') == no_results_message('Xyz')

    def test_search_sports_news_query(self):
        """Test parentheses are dropped and the sports suffix added."""
        client = MagicMock()
        client.search.return_value = 'rezultate'

        assert search_sports_news('Derby (video)', client=client) == 'rezultate'
        client.search.assert_called_once_with('Derby actualitate știri sport', 3)

    def test_targeted_search_keeps_query_order(self):
        """Test every query is searched with two results and reported in order."""
        client = MagicMock()
        client.search.side_effect = lambda query, count: f'rezultate {query}'

        result = targeted_search(['unu', 'doi', ' '], client=client, max_workers=2)

        assert result.startswith('REZULTATE CĂUTARE WEB (')
        assert result.index('PENTRU CEREREA: "unu"') < result.index('PENTRU CEREREA: "doi"')
        assert 'rezultate doi' in result
        assert client.search.call_count == 2
        assert all(c.args[1] == 2 for c in client.search.call_args_list)

    def test_targeted_search_no_queries(self):
        """Test no queries means no search."""
        assert targeted_search([], client=MagicMock()) == ''


TRENDS_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>Daily Search Trends</title>
<item><title>Daily Search Trends</title><link>https://trends.google.com/1</link></item>
<item><title>Taylor Swift tour</title><link>https://trends.google.com/2</link></item>
<item><title>Simona Halep în finală</title><link>https://trends.google.com/3</link></item>
<item><title>Meci Cluj</title><link>https://trends.google.com/4</link></item>
</channel>
</rss>""".encode('utf-8')


class TestTrendSearch:
    def test_is_romanian_topic(self):
        """Test diacritics, common words and cities mark a topic as Romanian."""
        assert is_romanian_topic('Simona Halep în finală')
        assert is_romanian_topic('Bani pentru pensii')
        assert is_romanian_topic('Meci Cluj')
        assert not is_romanian_topic('Taylor Swift tour')

    @patch('newsion.services.trend_search.requests.get')
    def test_viral_topics_keep_romanian_trends(self, mock_get):
        """Test feed headers and foreign trends are left out."""
        mock_get.return_value = MagicMock(content=TRENDS_RSS)

        assert get_romanian_trends() == ['Taylor Swift tour', 'Simona Halep în finală', 'Meci Cluj']
        assert get_viral_topics(5) == ['Simona Halep în finală', 'Meci Cluj']
        assert get_viral_topics(1) == ['Simona Halep în finală']

    @patch('newsion.services.trend_search.requests.get')
    def test_trends_failure_returns_empty(self, mock_get):
        """Test a network error yields no trends."""
        mock_get.side_effect = requests.ConnectionError('down')

        assert get_romanian_trends() == []

    @patch('newsion.services.trend_search.get_romanian_trends', return_value=['Taylor Swift tour'])
    def test_backup_topics_when_nothing_romanian(self, mock_trends):
        """Test the backup list is used when no trend looks Romanian."""
        topics = get_viral_topics(4)

        assert len(topics) == 4
        assert len(set(topics)) == 4
        assert set(topics) <= set(BACKUP_TOPICS)

    @patch('newsion.services.trend_search.search_recent_news', return_value='ȘTIRI RECENTE')
    @patch('newsion.services.trend_search._answer_box', return_value='REZUMAT GOOGLE:\nText\n\n')
    def test_topic_context_combines_sources(self, mock_box, mock_news):
        """Test the answer box comes before the recent news."""
        context = topic_context('Halep')

        assert context == ('INFORMAȚII DESPRE SUBIECTUL: "Halep"\n\n'
                           'CONTEXT GENERAL:\nREZUMAT GOOGLE:\nText\n\n\nȘTIRI RECENTE')
        mock_news.assert_called_once_with('Halep', 3)

    @patch('newsion.services.trend_search.search_recent_news', return_value='ȘTIRI RECENTE')
    @patch('newsion.services.trend_search._answer_box', side_effect=requests.Timeout('slow'))
    def test_topic_context_never_raises(self, mock_box, mock_news):
        """Test a failed context lookup becomes an apologetic sentence."""
        context = topic_context('Halep')

        assert context == 'Nu s-au putut obține informații de context despre "Halep" din cauza unei erori.'

    @patch('newsion.services.trend_search.requests.get')
    def test_recent_news_parsed(self, mock_get):
        """Test news blocks are read from the results page."""
        mock_get.return_value = MagicMock(text=(
            '<div class="SoaBEf"><a class="WlydOe" href="https://s.ro/1"></a>'
            '<div class="mCBkyc">Halep revine</div><div class="GI74Re">Detalii</div>'
            '<div class="NUnG9d">Sport.ro</div></div>'
        ))

        news = search_recent_news('Halep')

        assert news.startswith('ȘTIRI RECENTE DESPRE "Halep":')
        assert 'Titlu: Halep revine\nSursă: Sport.ro\nDescriere: Detalii\nURL: https://s.ro/1' in news


class TestScraper:
    @patch('newsion.services.web_scraper.requests.get')
    def test_generic_page(self, mock_get):
        """Test title, paragraphs and images come from a generic article page."""
        paragraph = 'Acesta este un paragraf suficient de lung pentru a fi păstrat.'
        mock_get.return_value = MagicMock(text=(
            '<html><body><h1>Titlu pagină</h1><main><article>'
            '<img src="https://x.ro/img.jpg">'
            f'<p>{paragraph}</p><p>scurt</p><p>{paragraph} Din nou.</p>'
            '</article></main></body></html>'
        ))

        result = scrape_article('https://www.example.com/stire')

        assert result['title'] == 'Titlu pagină'
        assert result['images'] == ['https://x.ro/img.jpg']
        assert result['content'].count(paragraph) == 2
        assert 'scurt' not in result['content']

    @patch('newsion.services.web_scraper.requests.get')
    def test_fetch_failure_raises(self, mock_get):
        """Test network failures surface as ScrapeError."""
        mock_get.side_effect = requests.ConnectionError('down')

        with pytest.raises(ScrapeError):
            scrape_article('https://www.example.com/stire')


class TestRewriteGenerator:
    def test_temporal_context(self):
        """Test article age wording in whole days."""
        now = datetime(2025, 1, 10, 12, 0)

        assert temporal_context(datetime(2025, 1, 10, 8, 0), now) == 'Acest articol a fost publicat astăzi.'
        assert temporal_context(datetime(2025, 1, 9, 8, 0), now) == 'Acest articol a fost publicat ieri.'
        assert temporal_context(datetime(2025, 1, 7, 12, 0), now) == 'Acest articol a fost publicat acum 3 zile.'
        assert temporal_context(datetime(2025, 1, 12, 12, 0), now) == \
            'Acest articol este programat să fie publicat în 2 zile.'

    def test_source_domain(self):
        """Test the www prefix is dropped from the source host."""
        assert source_domain('https://www.marca.com/futbol/1.html') == 'marca.com'
        assert source_domain('') == 'sursa originală'

    def test_rewrite_article(self):
        """Test the model answer is parsed into title and content."""
        client = MagicMock()
        client.complete.return_value = 'TITLU: Titlu nou\nCONȚINUT: Text rescris.'
        article = {'title': 'Vechi', 'content': 'Text', 'source_url': 'https://marca.com/1',
                   'pub_date': datetime(2025, 1, 10)}

        result = RewriteGenerator(client=client).rewrite_article(article, now=datetime(2025, 1, 10))

        assert result['title'] == 'Titlu nou'
        assert result['content'] == 'Text rescris.'
        assert client.complete.call_args.kwargs['temperature'] == 0.7

    def test_empty_answer_raises(self):
        """Test an empty completion is a generation error."""
        client = MagicMock()
        client.complete.return_value = '   '

        with pytest.raises(GenerationError):
            RewriteGenerator(client=client).article_from_prompt('Scrie despre derby')

    def test_client_error_raises(self):
        """Test provider exceptions are wrapped."""
        client = MagicMock()
        client.complete.side_effect = RuntimeError('boom')

        with pytest.raises(GenerationError):
            RewriteGenerator(client=client).article_from_topic('Subiect', 'context')

    def test_topic_fallback_title(self):
        """Test unstructured topic answers get the viral fallback title."""
        client = MagicMock()
        client.complete.return_value = 'Doar text.'

        result = RewriteGenerator(client=client).article_from_topic('Subiect', 'context')

        assert result['title'] == 'Subiect - Subiect Viral în România (regenerated)'


class TestLLMClientFactory:
    def setup_method(self):
        LLMClientFactory.reset()

    def teardown_method(self):
        LLMClientFactory.reset()

    def test_missing_key(self):
        """Test a provider without credentials is reported."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ProviderNotConfigured):
                LLMClientFactory.create('openrouter')
            assert not LLMClientFactory.is_available('openrouter')

    def test_unknown_provider(self):
        """Test unknown providers are rejected."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError):
                LLMClientFactory.create('nope')
            assert not LLMClientFactory.is_available('nope')

    def test_instances_are_cached(self):
        """Test the factory returns the cached client."""
        cached = MagicMock()
        LLMClientFactory._instances['groq'] = cached

        assert LLMClientFactory.create('groq') is cached


class TestEnricher:
    def test_standings_section(self):
        """Test the standings table is added for a known team."""
        standings = MagicMock(enabled=True)
        standings.standings_for_team.return_value = [
            {'position': 1, 'team': 'Juventus FC', 'playedGames': 20, 'points': 50},
        ]
        enricher = Enricher(standings=standings, search=MagicMock())

        text = enricher.enrich({'title': 'Juventus wins', 'content': ''})

        assert text.startswith('CLASAMENT ACTUAL Serie A (echipa principală: Juventus):\n')
        standings.standings_for_team.assert_called_once_with('Juventus')

    def test_failures_are_swallowed(self):
        """Test standings errors never fail enrichment."""
        standings = MagicMock(enabled=True)
        standings.standings_for_team.side_effect = RuntimeError('boom')
        search = MagicMock()
        search.search.return_value = 'rezultate'
        enricher = Enricher(standings=standings, search=search)

        text = enricher.enrich({'title': 'Juventus wins', 'content': ''}, enable_web_search=True)

        assert text == 'rezultate'

    def test_web_search_only_when_enabled(self):
        """Test search is not called unless enabled."""
        search = MagicMock()
        enricher = Enricher(standings=MagicMock(enabled=False), search=search)

        assert enricher.enrich({'title': 'Juventus wins', 'content': ''}) == ''
        search.search.assert_not_called()


class TestArticleStore:
    def test_exists_includes_deleted(self, app):
        """Test soft-deleted rows still count as processed."""
        article = make_article(source_url=regenerated_key('https://a.ro/1'))
        ArticleStore.delete(article.id)

        assert ArticleStore.exists_by_source_key(regenerated_key('https://a.ro/1'))
        assert not ArticleStore.exists_by_source_key(regenerated_key('https://a.ro/2'))

    def test_exists_since(self, app):
        """Test the since filter only sees recent rows."""
        article = make_article(source_url='viral-topic:x')
        article.created_at = utcnow() - timedelta(days=3)
        db.session.commit()

        assert ArticleStore.exists_by_source_key('viral-topic:x')
        assert not ArticleStore.exists_by_source_key('viral-topic:x', since=utcnow() - timedelta(days=2))

    def test_list_order_and_soft_delete(self, app):
        """Test newest first and soft-deleted rows hidden by default."""
        older = make_article(title='older', pub_date=datetime(2025, 1, 1))
        newer = make_article(title='newer', pub_date=datetime(2025, 1, 2))
        ArticleStore.delete(older.id)

        assert [a.title for a in ArticleStore.list_all()] == ['newer']
        assert [a.title for a in ArticleStore.list_all(include_deleted=True)] == ['newer', 'older']
        assert ArticleStore.get(older.id) is None
        assert ArticleStore.get(older.id, include_deleted=True).is_deleted
        assert ArticleStore.get(newer.id).title == 'newer'

    def test_hard_delete(self, app):
        """Test hard delete removes the row."""
        article = make_article()
        article_id = article.id

        assert ArticleStore.delete(article_id, hard=True)
        assert db.session.get(Article, article_id) is None
        assert not ArticleStore.delete(article_id)

    def test_update_text(self, app):
        """Test title and content are replaced."""
        article = make_article()

        updated = ArticleStore.update_text(article.id, 'Nou', 'Text nou')

        assert updated.title == 'Nou'
        assert ArticleStore.update_text(9999, 'x', 'y') is None

    def test_update_text_rolls_back_on_failure(self, app):
        """Test a failed commit rolls the session back and re-raises."""
        article = make_article()

        with patch('newsion.services.article_store.db.session.commit', side_effect=RuntimeError('locked')), \
                patch('newsion.services.article_store.db.session.rollback') as mock_rollback:
            with pytest.raises(RuntimeError):
                ArticleStore.update_text(article.id, 'Nou', 'Text nou')

        mock_rollback.assert_called_once()


class TestScheduler:
    @patch('newsion.scheduler.scheduler')
    def test_jobs_registered_and_run(self, mock_scheduler, app):
        """Test both jobs are scheduled and run the pipeline in an app context."""
        pipeline = MagicMock()
        pipeline.cron_generate_news.return_value = {'message': 'ok'}
        app.extensions['newsion_pipeline'] = pipeline

        with patch.dict(os.environ, {'CRON_SCHEDULE': '15 * * * *', 'IMPORT_INTERVAL_MINUTES': '10'}):
            init_scheduler(app)

        jobs = {c.kwargs['id']: c.args[0] for c in mock_scheduler.add_job.call_args_list}
        assert set(jobs) == {'cron_generate_news', 'import_rss'}
        mock_scheduler.start.assert_called_once()

        jobs['cron_generate_news']()
        pipeline.cron_generate_news.assert_called_once()

    @patch('newsion.scheduler.scheduler')
    def test_import_job_disabled(self, mock_scheduler, app):
        """Test a zero interval disables the import job."""
        with patch.dict(os.environ, {'IMPORT_INTERVAL_MINUTES': '0'}):
            init_scheduler(app)

        ids = [c.kwargs['id'] for c in mock_scheduler.add_job.call_args_list]
        assert ids == ['cron_generate_news']


class TestLogging:
    def test_json_format(self):
        """Test the JSON line format is installed on the root logger."""
        configure_logging('debug', 'json')

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        configure_logging('warning', 'text')

    def test_json_lines_are_valid_json(self):
        """Test quotes in messages and tracebacks still produce parseable lines."""
        formatter = JsonFormatter()
        record = logging.LogRecord('newsion.test', logging.ERROR, __file__, 1,
                                   'Search failed for "Juventus"', None, None)
        try:
            raise ValueError('bad "value"')
        except ValueError:
            failed = logging.LogRecord('newsion.test', logging.ERROR, __file__, 2,
                                       'Feed "x" failed', None, sys.exc_info())

        line = json.loads(formatter.format(record))
        with_trace = json.loads(formatter.format(failed))

        assert line['message'] == 'Search failed for "Juventus"'
        assert line['level'] == 'ERROR'
        assert line['name'] == 'newsion.test'
        assert 'ValueError: bad "value"' in with_trace['exc_info']
