import logging
from datetime import datetime, timezone
from functools import wraps

from flask import Blueprint, current_app, jsonify, request

from newsion.models.article import utcnow
from newsion.services.errors import GenerationError, PipelineSetupError
from newsion.services.pipeline import get_pipeline

logger = logging.getLogger(__name__)

pipeline_bp = Blueprint('pipeline', __name__)


def require_api_key(view):
    """Accept the key from the x-api-key header or the apiKey query parameter."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        key = request.headers.get('x-api-key') or request.args.get('apiKey')
        if not key or key not in current_app.config.get('API_KEYS', []):
            return jsonify({'error': 'Acces neautorizat. Api key invalidă sau lipsă.'}), 401
        return view(*args, **kwargs)
    return wrapped


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _flag(data: dict, name: str) -> bool:
    # Only a JSON true counts
    return data.get(name) is True


def _parse_date(value):
    parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _run(label, func, *args, **kwargs):
    try:
        return jsonify(func(*args, **kwargs))
    except PipelineSetupError as e:
        logger.error(f"{label} setup failed: {e}")
        return jsonify({'error': str(e)}), 500
    except Exception:
        logger.exception(f"{label} failed")
        return jsonify({'error': f'{label} failed'}), 500


@pipeline_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'timestamp': utcnow().isoformat()
    })


@pipeline_bp.route('/generateNews', methods=['POST'])
def generate_news():
    """
    Rewrite the latest feed items.

    Body: forceRefresh (bool), customDate (ISO date), enableWebSearch (bool)
    """
    data = _body()
    custom_date = None
    if data.get('customDate'):
        try:
            custom_date = _parse_date(data['customDate'])
        except ValueError:
            return jsonify({'error': 'customDate must be an ISO date'}), 400

    return _run('News generation', get_pipeline().generate_news,
                force_refresh=_flag(data, 'forceRefresh'),
                custom_date=custom_date,
                enable_web_search=_flag(data, 'enableWebSearch'))


@pipeline_bp.route('/scrapeArticles', methods=['POST'])
def scrape_articles():
    """Scrape the pages of the latest feed items. Body: forceRefresh, limit (default 5)."""
    data = _body()
    try:
        limit = int(data['limit']) if data.get('limit') else 5
    except (TypeError, ValueError):
        return jsonify({'error': 'limit must be a number'}), 400
    if limit < 1:
        return jsonify({'error': 'limit must be positive'}), 400

    return _run('Scraping', get_pipeline().scrape_articles,
                force_refresh=_flag(data, 'forceRefresh'), limit=limit)


@pipeline_bp.route('/importRSS', methods=['POST'])
@require_api_key
def import_rss():
    """Translate and store new feed items."""
    return _run('RSS import', get_pipeline().import_rss)


@pipeline_bp.route('/generateViralArticles', methods=['POST'])
def generate_viral_articles():
    """Body: count (default 5), forceRefresh, topics (list of strings)."""
    data = _body()
    try:
        count = int(data.get('count') or 5)
    except (TypeError, ValueError):
        return jsonify({'error': 'count must be a number'}), 400

    topics = data.get('topics')
    if topics is not None and not isinstance(topics, list):
        return jsonify({'error': 'topics must be a list'}), 400

    return _run('Viral generation', get_pipeline().generate_viral_articles,
                count=max(count, 1), force_refresh=_flag(data, 'forceRefresh'), topics=topics)


@pipeline_bp.route('/generateNewsByPrompt', methods=['POST'])
def generate_news_by_prompt():
    """Body: prompt (required), title, enableWebSearch, searchQueries, imageUrl."""
    data = _body()
    prompt = data.get('prompt')
    if not prompt or not isinstance(prompt, str):
        return jsonify({'error': 'Promptul este obligatoriu.'}), 400

    queries = data.get('searchQueries') or []
    if not isinstance(queries, list):
        return jsonify({'error': 'searchQueries must be a list'}), 400

    try:
        result = get_pipeline().generate_by_prompt(
            prompt,
            title=data.get('title'),
            enable_web_search=_flag(data, 'enableWebSearch'),
            search_queries=[q for q in queries if isinstance(q, str)],
            image_url=data.get('imageUrl') or None,
        )
    except GenerationError as e:
        logger.error(f"Prompt generation failed: {e}")
        return jsonify({'error': 'Eroare la generarea articolului'}), 500
    except Exception:
        logger.exception("Prompt generation failed")
        return jsonify({'error': 'Eroare la generarea articolului'}), 500

    return jsonify(result)


@pipeline_bp.route('/cronGenerateNews', methods=['GET'])
@require_api_key
def cron_generate_news():
    """Forced generation with web search, for external schedulers."""
    return _run('Cron news generation', get_pipeline().cron_generate_news)


@pipeline_bp.route('/cronImportRSS', methods=['GET'])
@require_api_key
def cron_import_rss():
    return _run('Cron RSS import', get_pipeline().cron_import_rss)
