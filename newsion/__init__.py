import os
import tempfile
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS

db = SQLAlchemy()
migrate = Migrate()

DEFAULT_FEEDS = (
    'https://www.gazzetta.it/dynamic-feed/rss/section/last.xml,'
    'https://e00-marca.uecdn.es/rss/portada.xml,'
    'https://www.mundodeportivo.com/rss/home.xml,'
    'https://www.digisport.ro/rss'
)


def _database_uri():
    uri = os.getenv('DATABASE_URL', 'sqlite:///news.db')
    # Hosted Postgres providers still hand out the legacy scheme
    if uri.startswith('postgres://'):
        uri = 'postgresql://' + uri[len('postgres://'):]
    return uri


def _engine_options(uri):
    """Build psycopg2 TLS arguments from PG_CA_CERT[_PATH] / PG_SSL_INSECURE."""
    if not uri.startswith('postgresql'):
        return {}

    insecure = os.getenv('PG_SSL_INSECURE', '').lower() in ('1', 'true')
    ca_path = os.getenv('PG_CA_CERT_PATH')
    ca_text = os.getenv('PG_CA_CERT')

    if ca_text and not ca_path:
        handle = tempfile.NamedTemporaryFile('w', suffix='.pem', delete=False)
        handle.write(ca_text.replace('\\n', '\n'))
        handle.close()
        ca_path = handle.name

    connect_args = {'application_name': 'newsion_app'}
    if insecure:
        connect_args['sslmode'] = 'require'
    elif ca_path:
        connect_args['sslmode'] = 'verify-full'
        connect_args['sslrootcert'] = ca_path

    return {'connect_args': connect_args, 'pool_pre_ping': True}


def create_app(test_config=None):
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'dev-secret-key')
    app.config['SQLALCHEMY_DATABASE_URI'] = _database_uri()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = _engine_options(app.config['SQLALCHEMY_DATABASE_URI'])

    app.config['RSS_FEEDS'] = [u.strip() for u in os.getenv('RSS_FEEDS', DEFAULT_FEEDS).split(',') if u.strip()]
    app.config['TRANSLATE_TARGET_LANG'] = os.getenv('TRANSLATE_TARGET_LANG', 'ro')
    app.config['PIPELINE_MAX_WORKERS'] = int(os.getenv('PIPELINE_MAX_WORKERS', 4))
    app.config['API_KEYS'] = [
        k for k in (os.getenv('CRON_API_KEY', 'secure_cron_key'), os.getenv('ADMIN_API_KEY')) if k
    ]

    if test_config:
        app.config.update(test_config)
        if 'SQLALCHEMY_DATABASE_URI' in test_config and 'SQLALCHEMY_ENGINE_OPTIONS' not in test_config:
            app.config['SQLALCHEMY_ENGINE_OPTIONS'] = _engine_options(test_config['SQLALCHEMY_DATABASE_URI'])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # CORS configuration - secure for production
    allowed_origins = os.getenv('CORS_ORIGINS', '*')
    if allowed_origins != '*':
        origins = [o.strip() for o in allowed_origins.split(',')]
    else:
        origins = '*'
    CORS(app, origins=origins)

    # Register blueprints
    from newsion.routes.pipeline import pipeline_bp
    from newsion.routes.articles import articles_bp

    app.register_blueprint(pipeline_bp, url_prefix='/api')
    app.register_blueprint(articles_bp, url_prefix='/api/article')

    # Schema is fixed and created once; later changes go through flask-migrate
    with app.app_context():
        from newsion import models  # noqa: F401
        db.create_all()

    return app
