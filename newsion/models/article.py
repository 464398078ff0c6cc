from datetime import datetime, timezone
from urllib.parse import quote
from newsion import db


class Origin:
    """Provenance of a stored article."""
    RSS = 'rss'
    SCRAPED = 'scraped'
    REGENERATED = 'regenerated'
    VIRAL = 'viral'
    PROMPT = 'prompt'
    MANUAL = 'manual'

    ALL = (RSS, SCRAPED, REGENERATED, VIRAL, PROMPT, MANUAL)


def utcnow():
    """Naive UTC now, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def encode_uri_component(value: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(value, safe="!*'()")


def regenerated_key(url: str) -> str:
    return f'regenerated-from-url:{encode_uri_component(url)}'


def viral_key(topic: str) -> str:
    return f'viral-topic:{encode_uri_component(topic)}'


def prompt_key(when: datetime) -> str:
    return f'prompt-generated-article:{when.isoformat()}'


class Article(db.Model):
    __tablename__ = 'articles'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False)
    content = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.Text)
    source_url = db.Column(db.Text, nullable=False, index=True)  # idempotency key, not unique
    origin = db.Column(db.String(20), nullable=False, default=Origin.RSS, index=True)
    origin_ref = db.Column(db.Text)  # original URL, topic or prompt title
    pub_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime, default=utcnow)
    is_manual = db.Column(db.Boolean, default=False)
    is_viral = db.Column(db.Boolean, default=False)
    deleted_at = db.Column(db.DateTime)

    __table_args__ = (
        db.Index('idx_pub_date', 'pub_date'),
        db.Index('idx_source_created', 'source_url', 'created_at'),
    )

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'image_url': self.image_url,
            'source_url': self.source_url,
            'origin': self.origin,
            'origin_ref': self.origin_ref,
            'pub_date': self.pub_date.isoformat() if self.pub_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'is_manual': bool(self.is_manual),
            'is_viral': bool(self.is_viral),
        }

    def __repr__(self):
        return f'<Article {self.title[:50]}>'
