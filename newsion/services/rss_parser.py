import feedparser
import re
from calendar import timegm
from html import unescape
from datetime import datetime, timezone
from typing import Optional
from xml.sax import SAXException

from newsion.models.article import utcnow


def strip_html(text: str) -> str:
    """Remove HTML tags and decode entities from text."""
    if not text:
        return ""
    # Remove HTML tags
    text = re.sub(r'<[^>]+>', ' ', text)
    # Decode HTML entities
    text = unescape(text)
    # Clean up whitespace
    text = re.sub(r'\s+', ' ', text).strip()
    return text


class RSSParser:
    """Parse RSS/Atom documents into normalized feed items."""

    @staticmethod
    def parse(document, fallback_date: Optional[datetime] = None, strict: bool = False) -> dict:
        """
        Parse an RSS/Atom document (bytes, text or URL).

        Returns dict with feed info and list of items normalized to
        {title, content, source_url, image_url, pub_date}. Items without a
        date get ``fallback_date`` (default: now). Entries without a link
        are dropped.

        With ``strict``, a document that is not well-formed XML is rejected
        even when the lenient parser recovered some entries.
        """
        feed = feedparser.parse(document)

        if feed.bozo and not feed.entries:
            raise ValueError(f"Failed to parse feed: {feed.bozo_exception}")
        if strict and feed.bozo and isinstance(feed.get('bozo_exception'), SAXException):
            raise ValueError(f"Malformed feed: {feed.bozo_exception}")

        fallback_date = fallback_date or utcnow()
        items = [RSSParser._extract_item(e, fallback_date) for e in feed.entries]
        return {
            'feed': RSSParser._extract_feed_info(feed),
            'items': [item for item in items if item['source_url']]
        }

    @staticmethod
    def _extract_feed_info(feed) -> dict:
        """Extract feed metadata."""
        return {
            'title': feed.feed.get('title', 'Untitled Feed'),
            'link': feed.feed.get('link', ''),
            'language': feed.feed.get('language', ''),
        }

    @staticmethod
    def _extract_image(entry) -> str:
        """Extract the item image from enclosure or media tags."""
        # Enclosure first, it is what most sports feeds use
        for enc in entry.get('enclosures') or []:
            if enc.get('type', '').startswith('image') or not enc.get('type'):
                url = enc.get('href', '') or enc.get('url', '')
                if url:
                    return url

        if entry.get('media_content'):
            for media in entry.media_content:
                if media.get('medium') == 'image' or media.get('type', '').startswith('image'):
                    return media.get('url', '')
            if entry.media_content[0].get('url'):
                return entry.media_content[0].get('url', '')

        if entry.get('media_thumbnail'):
            return entry.media_thumbnail[0].get('url', '')

        # Fall back to the first <img> in the body
        content = ''
        if entry.get('content'):
            content = entry.content[0].get('value', '')
        elif entry.get('summary'):
            content = entry.summary or ''

        if content:
            img_match = re.search(r'<img[^>]+src=["\']([^"\']+)["\']', content, re.IGNORECASE)
            if img_match:
                return img_match.group(1)

        return ''

    @staticmethod
    def _extract_date(entry) -> Optional[datetime]:
        # feedparser normalizes parsed times to UTC
        for key in ('published_parsed', 'updated_parsed'):
            parsed = entry.get(key)
            if parsed:
                return datetime.fromtimestamp(timegm(parsed), timezone.utc).replace(tzinfo=None)
        return None

    @staticmethod
    def _extract_item(entry, fallback_date: datetime) -> dict:
        """Normalize a feed entry."""
        raw_content = ''
        if entry.get('summary'):
            raw_content = entry.summary
        elif entry.get('content'):
            raw_content = entry.content[0].get('value', '')

        image_url = RSSParser._extract_image(entry)
        if image_url and not image_url.startswith(('http://', 'https://')):
            image_url = ''

        return {
            'title': strip_html(entry.get('title', '')),
            'content': strip_html(raw_content),
            'source_url': entry.get('link', ''),
            'image_url': image_url,
            'pub_date': RSSParser._extract_date(entry) or fallback_date,
        }
