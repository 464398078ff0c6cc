"""Article page scraping with per-site selectors and a generic fallback."""
import logging
from typing import List
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from newsion.services.errors import ScrapeError

logger = logging.getLogger(__name__)

SCRAPE_HEADERS = {
    'User-Agent': ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                   '(KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36'),
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'ro,en-US;q=0.7,en;q=0.3',
    'Cache-Control': 'no-cache',
    'Pragma': 'no-cache',
}

# domain fragment -> (title selector, image selector, paragraph selector)
SITE_SELECTORS = {
    'digisport.ro': ('h1.article-title', '.article-content img', '.article-content p'),
    'gazzetta.it': ('h1.titulo, h1[itemprop="headline"]', 'figure img',
                    '.article-body p, .body-article p'),
    'marca.com': ('h1.title-article', '.multimedia-item img', '.article-body p'),
    'mundodeportivo.com': ('h1.title', '.article-main img', '.article-body p'),
}

GENERIC_CONTAINERS = ('article, .article, .post, .entry, .content, .article-content, '
                      '.post-content, main')


def _image_src(img) -> str:
    return img.get('src') or img.get('data-src') or ''


def _scrape_site(soup: BeautifulSoup, selectors) -> dict:
    title_sel, image_sel, paragraph_sel = selectors
    title_node = soup.select_one(title_sel)
    images = [src for src in (_image_src(img) for img in soup.select(image_sel)) if src]
    content = ''.join(p.get_text(strip=True) + '\n\n' for p in soup.select(paragraph_sel))
    return {
        'title': title_node.get_text(strip=True) if title_node else '',
        'content': content,
        'images': images,
    }


def _scrape_generic(soup: BeautifulSoup) -> dict:
    title_node = soup.find('h1') or soup.select_one(
        'article h1, .article-title, .entry-title, .post-title, .headline')
    title = title_node.get_text(strip=True) if title_node else ''

    containers = soup.select(GENERIC_CONTAINERS)
    images: List[str] = []
    content = ''
    seen = set()  # containers nest (main > article), count each <p> once
    for container in containers:
        for img in container.find_all('img'):
            src = _image_src(img)
            if src.startswith('http') and src not in images:
                images.append(src)
        for paragraph in container.find_all('p'):
            if id(paragraph) in seen:
                continue
            seen.add(id(paragraph))
            text = paragraph.get_text(strip=True)
            if len(text) > 20:
                content += text + '\n\n'

    if len(content) < 100:
        for paragraph in soup.find_all('p'):
            text = paragraph.get_text(strip=True)
            if len(text) > 30:
                content += text + '\n\n'

    return {'title': title, 'content': content, 'images': images}


def scrape_article(url: str, timeout: int = 10) -> dict:
    """
    Scrape a news page into {title, content, images}.

    Raises ScrapeError when the page cannot be fetched.
    """
    logger.info(f"Scraping {url}")
    try:
        response = requests.get(url, headers=SCRAPE_HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ScrapeError(f"Could not fetch {url}: {e}") from e

    soup = BeautifulSoup(response.text, 'html.parser')
    domain = urlparse(url).hostname or ''

    for fragment, selectors in SITE_SELECTORS.items():
        if fragment in domain:
            return _scrape_site(soup, selectors)
    return _scrape_generic(soup)
