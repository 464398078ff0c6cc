"""
Pipeline orchestrators.

Each run fetches or derives candidates, drops already processed ones
unless forced, fans the external calls out over a bounded thread pool and
then inserts the successes on the calling thread. One failing item never
fails the batch.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from newsion import db
from newsion.models.article import Origin, prompt_key, regenerated_key, utcnow, viral_key
from newsion.services.article_store import ArticleStore
from newsion.services.enrichment import Enricher
from newsion.services.errors import PipelineSetupError
from newsion.services.feed_fetcher import FeedFetcher, sort_latest
from newsion.services.rewrite_generator import RewriteGenerator
from newsion.services.translator import Translator
from newsion.services.trend_search import get_viral_topics, topic_context
from newsion.services.web_scraper import scrape_article
from newsion.services.web_search import WebSearch, targeted_search

logger = logging.getLogger(__name__)

NEWS_LIMIT = 10
SCRAPE_LIMIT = 5
SCRAPE_DELAY = 2
MIN_SCRAPED_LENGTH = 100
VIRAL_WINDOW = timedelta(days=2)


class NewsPipeline:
    """Orchestrates fetch, dedup, translation, enrichment, generation and storage."""

    def __init__(self, feeds: Optional[List[str]] = None, translator: Optional[Translator] = None,
                 enricher: Optional[Enricher] = None, generator: Optional[RewriteGenerator] = None,
                 search: Optional[WebSearch] = None, max_workers: Optional[int] = None,
                 target_lang: Optional[str] = None, sleep: Callable[[float], None] = time.sleep):
        self._feeds = feeds
        self._max_workers = max_workers
        self._target_lang = target_lang
        self.translator = translator or Translator()
        self._enricher = enricher
        self._generator = generator
        self._search = search
        self.sleep = sleep

    @property
    def feeds(self) -> List[str]:
        if self._feeds is None:
            return list(current_app.config.get('RSS_FEEDS', []))
        return self._feeds

    @property
    def max_workers(self) -> int:
        if self._max_workers is None:
            return int(current_app.config.get('PIPELINE_MAX_WORKERS', 4))
        return self._max_workers

    @property
    def target_lang(self) -> str:
        if self._target_lang is None:
            return current_app.config.get('TRANSLATE_TARGET_LANG', 'ro')
        return self._target_lang

    @property
    def enricher(self) -> Enricher:
        if self._enricher is None:
            self._enricher = Enricher(search=self.search)
        return self._enricher

    @property
    def generator(self) -> RewriteGenerator:
        if self._generator is None:
            self._generator = RewriteGenerator()
        return self._generator

    @property
    def search(self) -> WebSearch:
        if self._search is None:
            self._search = WebSearch()
        return self._search

    # helpers

    def _fan_out(self, func: Callable, items: list, label: str) -> list:
        """Run ``func`` over ``items`` on the bounded pool. Failures become None, order is kept."""
        def guarded(item):
            try:
                return func(item)
            except Exception as e:
                logger.error(f"{label} failed for {_describe(item)}: {e}")
                return None

        if not items:
            return []
        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(items)))) as executor:
            return list(executor.map(guarded, items))

    def _fetch_feeds(self, limit: Optional[int]) -> List[dict]:
        feeds = self.feeds
        if not feeds:
            raise PipelineSetupError("No RSS feeds configured")
        return FeedFetcher.fetch_latest(feeds, limit=limit, max_workers=self.max_workers)

    @staticmethod
    def _unprocessed(candidates: list, key: Callable[[object], str],
                     since: Optional[datetime] = None) -> list:
        try:
            return [c for c in candidates if not ArticleStore.exists_by_source_key(key(c), since=since)]
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PipelineSetupError(f"Duplicate check failed: {e}") from e

    @staticmethod
    def _insert_all(rows: List[Optional[dict]]) -> list:
        stored = []
        for row in rows:
            if row is None:
                continue
            try:
                stored.append(ArticleStore.insert(row).to_dict())
            except Exception as e:
                logger.error(f"Could not store '{row.get('title', '')[:60]}': {e}")
        return stored

    # orchestrators

    def generate_news(self, force_refresh: bool = False, custom_date: Optional[datetime] = None,
                      enable_web_search: bool = False) -> dict:
        """Rewrite the latest feed items that have no regenerated version yet."""
        items = self._fetch_feeds(NEWS_LIMIT)
        if not items:
            return {'message': 'Nu s-au găsit articole în sursele RSS.', 'articles': []}

        candidates = items if force_refresh else self._unprocessed(
            items, lambda item: regenerated_key(item['source_url']))
        if not candidates:
            return {
                'message': ('Nu s-au găsit articole noi în sursele RSS.' if force_refresh else
                            'Toate articolele recente din RSS au fost deja procesate. '
                            'Folosiți forceRefresh=true pentru a le regenera.'),
                'articles': [],
            }

        logger.info(f"Generating {len(candidates)} articles (force_refresh={force_refresh}, "
                    f"web_search={enable_web_search})")
        target_lang = self.target_lang
        # Built once here, never lazily from inside the workers
        translator, enricher, generator = self.translator, self.enricher, self.generator

        def rewrite(item):
            translated = translator.translate_item(item, target_lang)
            enrichment = enricher.enrich(translated, enable_web_search=enable_web_search)
            generated = generator.rewrite_article(translated, enrichment, now=custom_date)
            return {
                'title': generated['title'],
                'content': generated['content'],
                'image_url': item.get('image_url') or None,
                'source_url': regenerated_key(item['source_url']),
                'origin': Origin.REGENERATED,
                'origin_ref': item['source_url'],
                'pub_date': utcnow(),
                'is_manual': True,
            }

        articles = self._insert_all(self._fan_out(rewrite, candidates, 'Rewrite'))
        logger.info(f"Generated {len(articles)} of {len(candidates)} articles")
        return {
            'message': f"S-au generat cu succes {len(articles)} articole din {len(candidates)}",
            'articles': articles,
        }

    def scrape_articles(self, force_refresh: bool = False, limit: int = SCRAPE_LIMIT) -> dict:
        """Scrape the full pages of the latest feed items, one at a time."""
        items = self._fetch_feeds(limit)
        if not items:
            return {'message': 'Nu s-au găsit articole în sursele RSS.', 'articles': []}

        candidates = items if force_refresh else self._unprocessed(items, lambda item: item['source_url'])
        if not candidates:
            return {
                'message': ('Nu s-au găsit articole noi în sursele RSS.' if force_refresh else
                            'Toate articolele recente din RSS au fost deja procesate. '
                            'Folosiți forceRefresh=true pentru a le regenera.'),
                'articles': [],
            }

        articles = []
        for index, item in enumerate(candidates):
            url = item.get('source_url')
            if not url:
                logger.warning(f"Item without URL skipped: {item.get('title', '')[:60]}")
                continue

            if index:
                self.sleep(SCRAPE_DELAY)

            try:
                scraped = scrape_article(url)
            except Exception as e:
                logger.error(f"Scraping {url} failed: {e}")
                continue

            content = (scraped.get('content') or '').strip()
            if len(content) < MIN_SCRAPED_LENGTH:
                logger.warning(f"Not enough content at {url}, skipped")
                continue

            images = scraped.get('images') or []
            articles.extend(self._insert_all([{
                'title': scraped.get('title') or item['title'],
                'content': content,
                'image_url': images[0] if images else (item.get('image_url') or None),
                'source_url': url,
                'origin': Origin.SCRAPED,
                'origin_ref': url,
                'pub_date': item['pub_date'],
                'is_manual': False,
            }]))

        logger.info(f"Scraped {len(articles)} of {len(candidates)} articles")
        return {
            'message': f"S-au extras cu succes {len(articles)} articole din {len(candidates)}",
            'articles': articles,
        }

    def import_rss(self) -> dict:
        """Translate and store every feed item whose URL is not stored yet."""
        items = sort_latest(self._fetch_feeds(None))
        target_lang = self.target_lang
        translated = self._fan_out(lambda item: self.translator.translate_item(item, target_lang),
                                   items, 'Translation')

        inserted = skipped = 0
        for original, item in zip(items, translated):
            item = item or original
            url = item.get('source_url')
            try:
                if not url or ArticleStore.exists_by_source_key(url):
                    skipped += 1
                    continue
                ArticleStore.insert({
                    'title': item['title'],
                    'content': item['content'],
                    'image_url': item.get('image_url') or None,
                    'source_url': url,
                    'origin': Origin.RSS,
                    'origin_ref': url,
                    'pub_date': item['pub_date'],
                    'is_manual': False,
                })
                inserted += 1
            except Exception as e:
                db.session.rollback()
                logger.error(f"Could not import {url}: {e}")
                skipped += 1

        logger.info(f"RSS import done: {inserted} new, {skipped} skipped, {len(items)} total")
        return {
            'message': f"Import terminat. Articole noi: {inserted}, articole sărite (deja existente): {skipped}",
            'total': len(items),
            'inserted': inserted,
            'skipped': skipped,
        }

    def generate_viral_articles(self, count: int = 5, force_refresh: bool = False,
                                topics: Optional[List[str]] = None) -> dict:
        """Write articles about trending Romanian topics."""
        topics = [t for t in (topics or []) if isinstance(t, str) and t.strip()]
        viral_topics = topics[:count] if topics else get_viral_topics(count)
        if not viral_topics:
            return {
                'message': 'Nu s-au putut identifica subiecte virale. Încercați din nou mai târziu.',
                'topics': [],
                'articles': [],
            }

        candidates = viral_topics if force_refresh else self._unprocessed(
            viral_topics, viral_key, since=utcnow() - VIRAL_WINDOW)
        if not candidates:
            return {
                'message': ('Nu s-au găsit subiecte virale pentru generare.' if force_refresh else
                            'Toate subiectele virale identificate au fost deja procesate recent. '
                            'Folosiți forceRefresh=true pentru a le regenera.'),
                'topics': viral_topics,
                'articles': [],
            }

        logger.info(f"Generating viral articles for {len(candidates)} topics")
        generator = self.generator

        def write(topic):
            generated = generator.article_from_topic(topic, topic_context(topic))
            return {
                'title': generated['title'],
                'content': generated['content'],
                'source_url': viral_key(topic),
                'origin': Origin.VIRAL,
                'origin_ref': topic,
                'pub_date': utcnow(),
                'is_manual': True,
                'is_viral': True,
            }

        articles = self._insert_all(self._fan_out(write, candidates, 'Viral article'))
        logger.info(f"Generated {len(articles)} of {len(candidates)} viral articles")
        return {
            'message': f"S-au generat cu succes {len(articles)} articole din {len(candidates)} subiecte virale",
            'topics': viral_topics,
            'articles': articles,
        }

    def generate_by_prompt(self, prompt: str, title: Optional[str] = None,
                           enable_web_search: bool = False, search_queries: Optional[List[str]] = None,
                           image_url: Optional[str] = None) -> dict:
        """Generate and store one article from a free-form prompt. Raises GenerationError."""
        if not prompt:
            raise ValueError("prompt is required")

        search_results = ''
        if enable_web_search and search_queries:
            search_results = targeted_search(search_queries, client=self.search, max_workers=self.max_workers)

        generated = self.generator.article_from_prompt(prompt, search_results, title=title)
        now = utcnow()
        article = ArticleStore.insert({
            'title': generated['title'],
            'content': generated['content'],
            'image_url': image_url or None,
            'source_url': prompt_key(now),
            'origin': Origin.PROMPT,
            'origin_ref': title or prompt[:200],
            'pub_date': now,
            'is_manual': True,
        })
        logger.info(f"Generated article {article.id} from prompt")
        return {'message': 'Articolul a fost generat cu succes.', 'article': article.to_dict()}

    def cron_generate_news(self) -> dict:
        result = self.generate_news(force_refresh=True, custom_date=None, enable_web_search=True)
        result['cronTimestamp'] = utcnow().isoformat()
        return result

    def cron_import_rss(self) -> dict:
        result = self.import_rss()
        result['message'] = f"Cron executat cu succes: {result['message']}"
        result['cronTimestamp'] = utcnow().isoformat()
        return result


def _describe(item) -> str:
    if isinstance(item, dict):
        return repr(item.get('title', '')[:60])
    return repr(item)


def get_pipeline() -> NewsPipeline:
    """The app-wide pipeline, so standings cache and throttle outlive one request."""
    pipeline = current_app.extensions.get('newsion_pipeline')
    if pipeline is None:
        pipeline = current_app.extensions['newsion_pipeline'] = NewsPipeline()
    return pipeline
