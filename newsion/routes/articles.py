import logging

from flask import Blueprint, current_app, jsonify, request

from newsion.models.article import Origin, utcnow
from newsion.services.article_store import ArticleStore
from newsion.services.translator import Translator, looks_romanian

logger = logging.getLogger(__name__)

articles_bp = Blueprint('articles', __name__)


@articles_bp.route('/all', methods=['GET'])
def list_articles():
    """All visible articles, newest first. ?includeDeleted=true adds soft-deleted ones."""
    include_deleted = request.args.get('includeDeleted', '').lower() == 'true'
    articles = ArticleStore.list_all(include_deleted=include_deleted)
    return jsonify([a.to_dict() for a in articles])


@articles_bp.route('/<int:article_id>', methods=['GET'])
def get_article(article_id):
    """
    Get a single article.

    Fields that do not look Romanian are translated and the translation is
    written back, so the next read is served as stored.
    """
    article = ArticleStore.get(article_id)
    if article is None:
        return jsonify({'error': 'Articol negăsit'}), 404

    title, content = article.title, article.content
    if looks_romanian(title) and looks_romanian(content):
        return jsonify(article.to_dict())

    translator = Translator()
    target_lang = current_app.config.get('TRANSLATE_TARGET_LANG', 'ro')
    new_title = title if looks_romanian(title) else translator.translate(title, target_lang)
    new_content = content if looks_romanian(content) else translator.translate(content, target_lang)

    if (new_title, new_content) == (title, content):
        return jsonify(article.to_dict())

    # Serve the translation even when it cannot be stored
    payload = dict(article.to_dict(), title=new_title, content=new_content)
    try:
        updated = ArticleStore.update_text(article_id, new_title, new_content)
    except Exception as e:
        logger.error(f"Could not store translation of article {article_id}: {e}")
        updated = None
    if updated is not None:
        payload = updated.to_dict()

    return jsonify(payload)


@articles_bp.route('/create', methods=['POST'])
def create_article():
    """Create a manual article. Body: title, content, imageUrl, sourceUrl."""
    data = request.get_json(silent=True) or {}
    title = data.get('title')
    content = data.get('content')

    if not title or not content:
        return jsonify({'error': 'Titlul și conținutul sunt obligatorii'}), 400

    try:
        article = ArticleStore.insert({
            'title': title,
            'content': content,
            'image_url': data.get('imageUrl') or None,
            'source_url': data.get('sourceUrl') or '',
            'origin': Origin.MANUAL,
            'origin_ref': data.get('sourceUrl') or None,
            'pub_date': utcnow(),
            'is_manual': True,
        })
    except Exception:
        logger.exception("Article creation failed")
        return jsonify({'error': 'Eroare internă server'}), 500

    return jsonify(article.to_dict()), 201


@articles_bp.route('/delete', methods=['DELETE'])
def delete_article():
    """Soft delete by id (query or body). hard=true removes the row."""
    data = request.get_json(silent=True) or {}
    raw_id = request.args.get('id') or data.get('id')
    if not raw_id:
        return jsonify({'error': 'ID-ul articolului este necesar'}), 400

    try:
        article_id = int(raw_id)
    except (TypeError, ValueError):
        return jsonify({'error': 'ID-ul articolului este invalid'}), 400

    hard = request.args.get('hard', '').lower() == 'true' or data.get('hard') is True
    if not ArticleStore.delete(article_id, hard=hard):
        return jsonify({'error': 'Articolul nu a fost găsit'}), 404

    return jsonify({'message': 'Articolul a fost șters cu succes'})
