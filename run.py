#!/usr/bin/env python3
"""Entry point for the Newsion Flask application."""

import os
from dotenv import load_dotenv

load_dotenv()

from newsion import create_app
from newsion.logging_setup import configure_logging
from newsion.scheduler import init_scheduler, shutdown_scheduler

configure_logging()
app = create_app()

if os.getenv('ENABLE_SCHEDULER', 'true').lower() == 'true':
    init_scheduler(app)

if __name__ == '__main__':
    try:
        port = int(os.getenv('PORT', 5000))
        debug = os.getenv('FLASK_ENV') == 'development'
        # The reloader would start a second scheduler
        app.run(host='0.0.0.0', port=port, debug=debug, use_reloader=False)
    finally:
        shutdown_scheduler()
