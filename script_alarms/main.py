"""Script alarm host entry point."""

import asyncio
import contextlib
import logging

from script_alarms.app import create_scheduler
from script_alarms.config import settings

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper()),
    )


async def serve(stop_event: asyncio.Event | None = None) -> None:
    """Run the scheduler until *stop_event* is set (or forever)."""
    scheduler = create_scheduler()
    await scheduler.start()
    try:
        await (stop_event or asyncio.Event()).wait()
    finally:
        await scheduler.stop()


def main() -> None:
    """Start the alarm host and block until interrupted."""
    configure_logging()
    logger.info(
        "Starting script alarm host (scripts=%s, tz=%s)",
        settings.script_dir,
        settings.scheduler_timezone,
    )
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve())


if __name__ == "__main__":
    main()
