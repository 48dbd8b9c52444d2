"""Run the bot with Telegram long polling."""

import asyncio
import contextlib
import logging
import signal

from insurance_bot.app_logging import configure_logging
from insurance_bot.containers import build_container
from insurance_bot.polling import TelegramPollingWorker


async def _run() -> None:
    container = build_container()
    worker = TelegramPollingWorker(
        updates_client=container.telegram_client,
        engine=container.workflow_engine,
    )
    stop_event = asyncio.Event()
    with contextlib.suppress(NotImplementedError):
        asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, stop_event.set)
    try:
        await worker.run(stop_event)
    finally:
        await container.close_resources()


def main() -> None:
    """Entrypoint for ``python -m insurance_bot``."""
    configure_logging()
    logging.getLogger(__name__).info("Starting insurance bot in polling mode")
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_run())


if __name__ == "__main__":
    main()
