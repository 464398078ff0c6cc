#!/usr/bin/env python3
"""Run one pipeline job from the command line and print its summary."""
import argparse
import json
import os
import sys

# Add the parent directory to the path so we can import newsion
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from newsion import create_app
from newsion.logging_setup import configure_logging
from newsion.services.pipeline import get_pipeline


def run_job(args):
    """Run the selected job inside an app context and return its result."""
    app = create_app()

    with app.app_context():
        pipeline = get_pipeline()

        if args.job == 'generate-news':
            return pipeline.generate_news(
                force_refresh=args.force,
                enable_web_search=args.web_search
            )
        if args.job == 'import-rss':
            return pipeline.import_rss()
        if args.job == 'scrape':
            return pipeline.scrape_articles(force_refresh=args.force, limit=args.limit)
        return pipeline.generate_viral_articles(
            count=args.count,
            force_refresh=args.force,
            topics=args.topic or None
        )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Run a Newsion pipeline job once')
    parser.add_argument('job', choices=['generate-news', 'import-rss', 'scrape', 'viral'])
    parser.add_argument('--force', action='store_true', help='Ignore already processed items')
    parser.add_argument('--web-search', action='store_true', help='Enrich rewrites with web search')
    parser.add_argument('--limit', type=int, default=5, help='Articles to scrape')
    parser.add_argument('--count', type=int, default=5, help='Viral topics to cover')
    parser.add_argument('--topic', action='append', help='Custom viral topic (repeatable)')

    args = parser.parse_args()
    configure_logging()

    result = run_job(args)
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))


if __name__ == '__main__':
    main()
