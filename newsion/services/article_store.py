import logging
from datetime import datetime
from typing import List, Optional

from newsion import db
from newsion.models import Article
from newsion.models.article import utcnow

logger = logging.getLogger(__name__)

ARTICLE_FIELDS = ('title', 'content', 'image_url', 'source_url', 'origin', 'origin_ref',
                  'pub_date', 'is_manual', 'is_viral')


class ArticleStore:
    """Persistence for articles. Every write commits on its own."""

    @staticmethod
    def insert(data: dict) -> Article:
        article = Article(**{k: data[k] for k in ARTICLE_FIELDS if data.get(k) is not None})
        db.session.add(article)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return article

    @staticmethod
    def exists_by_source_key(key: str, since: Optional[datetime] = None) -> bool:
        """
        True when any row, soft-deleted ones included, carries this key.

        ``since`` restricts the check to rows created after that moment.
        """
        query = Article.query.filter(Article.source_url == key)
        if since is not None:
            query = query.filter(Article.created_at > since)
        return db.session.query(query.exists()).scalar()

    @staticmethod
    def list_all(include_deleted: bool = False) -> List[Article]:
        query = Article.query
        if not include_deleted:
            query = query.filter(Article.deleted_at.is_(None))
        return query.order_by(Article.pub_date.desc(), Article.id.desc()).all()

    @staticmethod
    def get(article_id: int, include_deleted: bool = False) -> Optional[Article]:
        article = db.session.get(Article, article_id)
        if article is None or (article.is_deleted and not include_deleted):
            return None
        return article

    @staticmethod
    def delete(article_id: int, hard: bool = False) -> bool:
        """Soft delete by default. Returns False when the id does not exist."""
        article = db.session.get(Article, article_id)
        if article is None:
            return False

        if hard:
            db.session.delete(article)
        else:
            article.deleted_at = utcnow()
        db.session.commit()
        logger.info(f"{'Hard' if hard else 'Soft'} deleted article {article_id}")
        return True

    @staticmethod
    def update_text(article_id: int, title: str, content: str) -> Optional[Article]:
        article = db.session.get(Article, article_id)
        if article is None:
            return None
        article.title = title
        article.content = content
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return article
