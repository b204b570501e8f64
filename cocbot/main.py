"""Main entry point for cocbot.

Initializes logging in two phases (defaults then config-driven),
loads the term dictionary, creates the CocBot and runs the async event
loop with graceful shutdown on SIGTERM/SIGINT.

Key functions:
    main: Async entry point -- sets up logging, config, dictionary,
        alias store, bot and signal handlers, then runs the polling loop.
    run: Synchronous wrapper that calls asyncio.run(main()).
"""

import asyncio
import signal
import sys

import structlog

from . import __version__
from .logging_config import setup_logging


async def main():
    """Main async entry point."""
    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger = structlog.get_logger("cocbot")

    logger.info("cocbot_starting", version=__version__)

    # Import here to ensure logging is configured first
    from .alias_store import AliasStore
    from .bot import CocBot
    from .config import get_config
    from .dictionary import load_dictionary
    from .exceptions import CocBotError

    try:
        config = get_config()
        config.validate()
        # Phase 2: reconfigure with real config, cache_logger_on_first_use=True
        setup_logging(config)
        dictionary = load_dictionary(config.dictionary_path)
    except CocBotError as e:
        logger.error("startup_failed", error=str(e), category=e.category.value)
        raise

    bot = CocBot(
        dictionary=dictionary,
        alias_store=AliasStore(config.alias_db_path),
        config=config,
    )

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig):
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            # Windows: add_signal_handler not supported.
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: handle_shutdown(signal.SIGINT),
                )

    try:
        bot_task = asyncio.create_task(bot.run())
        stop_task = asyncio.create_task(shutdown_event.wait())

        done, _ = await asyncio.wait(
            {bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )
        stop_task.cancel()

        if bot_task in done:
            # run() only returns early when polling could not start
            bot_task.result()
        else:
            bot_task.cancel()
            try:
                await bot_task
            except asyncio.CancelledError:
                pass

    except Exception as e:
        logger.error("bot_error", error=str(e))
        raise
    finally:
        await bot.stop()
        logger.info("cocbot_stopped")


def run():
    """Synchronous entry point for the ``cocbot`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except SystemExit as e:
        sys.exit(e.code)


if __name__ == "__main__":
    run()
