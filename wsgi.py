"""WSGI entry point for production deployment."""
import os
from dotenv import load_dotenv
load_dotenv()

from newsion import create_app
from newsion.logging_setup import configure_logging
from newsion.scheduler import init_scheduler

configure_logging()
app = create_app()

# Run with a single worker when the scheduler is on, or jobs fire once per worker
if os.getenv('ENABLE_SCHEDULER', 'true').lower() == 'true':
    init_scheduler(app)
