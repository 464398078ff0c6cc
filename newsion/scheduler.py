import logging
import os

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def init_scheduler(app):
    """Schedule hourly forced news generation and periodic RSS import."""
    cron_schedule = os.getenv('CRON_SCHEDULE', '45 * * * *')
    import_interval = int(os.getenv('IMPORT_INTERVAL_MINUTES', 30))

    def generate_job():
        with app.app_context():
            from newsion.services.pipeline import get_pipeline
            try:
                result = get_pipeline().cron_generate_news()
                logger.info(f"Scheduled generation: {result['message']}")
            except Exception as e:
                logger.error(f"Scheduled generation failed: {e}")

    def import_job():
        with app.app_context():
            from newsion.services.pipeline import get_pipeline
            try:
                result = get_pipeline().import_rss()
                logger.info(
                    f"Scheduled import: {result['inserted']} new, "
                    f"{result['skipped']} skipped of {result['total']}"
                )
            except Exception as e:
                logger.error(f"Scheduled import failed: {e}")

    scheduler.add_job(
        generate_job,
        trigger=CronTrigger.from_crontab(cron_schedule),
        id='cron_generate_news',
        name='Generate news from feeds',
        replace_existing=True
    )

    # 0 disables the import job
    if import_interval > 0:
        scheduler.add_job(
            import_job,
            trigger=IntervalTrigger(minutes=import_interval),
            id='import_rss',
            name='Import RSS feeds',
            replace_existing=True
        )
        logger.info(f"RSS import scheduled every {import_interval} minutes")

    scheduler.start()
    logger.info(f"Scheduler started: generating news on '{cron_schedule}'")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown()
