from newsion.services.rss_parser import RSSParser
from newsion.services.feed_fetcher import FeedFetcher
from newsion.services.article_store import ArticleStore
from newsion.services.translator import Translator
from newsion.services.llm_client import LLMClientFactory, BaseLLMClient
from newsion.services.rewrite_generator import RewriteGenerator
from newsion.services.pipeline import NewsPipeline

__all__ = [
    'RSSParser',
    'FeedFetcher',
    'ArticleStore',
    'Translator',
    'LLMClientFactory',
    'BaseLLMClient',
    'RewriteGenerator',
    'NewsPipeline',
]
