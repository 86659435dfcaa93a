"""gemrelay — Main entry point."""

import asyncio
import logging
import signal
import sys

import discord
from pydantic import ValidationError

from .channels.discord import DiscordChannel
from .commands import CommandDispatcher
from .config import RelaySettings, load_settings
from .llm.google import GoogleProvider
from .relay import RelayController
from .session import SessionStore
from .uploader import MediaUploader

_log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("gemrelay")


def setup_logging(log_file: str | None = None, debug: bool = False):
    """Log to stderr and, when given, to a UTF-8 file."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=logging.INFO, format=_log_format, handlers=handlers)
    if debug:
        logger.setLevel(logging.DEBUG)


def build_app(settings: RelaySettings) -> tuple[DiscordChannel, RelayController, CommandDispatcher]:
    """Wire provider, session store, relay and commands onto a Discord channel."""
    provider = GoogleProvider(api_key=settings.gemini_api_key)
    sessions = SessionStore(provider)
    channel = DiscordChannel(
        settings.discord_bot_token,
        avatar_path=settings.avatar_path,
        username=settings.bot_username,
    )
    relay = RelayController(channel, sessions, MediaUploader(provider))
    dispatcher = CommandDispatcher(sessions)
    channel.attach(relay, dispatcher)
    return channel, relay, dispatcher


async def run(settings: RelaySettings) -> int:
    """Run until SIGINT/SIGTERM or a fatal connection error. Returns exit code."""
    try:
        channel, _, _ = build_app(settings)
    except Exception as e:
        logger.critical(f"Error creating clients: {type(e).__name__}: {e}", exc_info=True)
        return 1

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            pass  # non-main thread or platform without signal support

    client_task = asyncio.create_task(channel.start())
    stop_task = asyncio.create_task(stop.wait())
    logger.info("Bot is now running. Press Ctrl+C to exit.")

    exit_code = 0
    try:
        done, _ = await asyncio.wait({client_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if client_task in done:
            client_task.result()
    except discord.LoginFailure as e:
        logger.critical(f"Cannot open the session: {e}")
        exit_code = 1
    except Exception as e:
        logger.critical(f"Fatal error: {type(e).__name__}: {e}", exc_info=True)
        exit_code = 1
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await channel.stop()
        for task in (stop_task, client_task):
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
    return exit_code


def main(debug: bool = False):
    """Entry point."""
    try:
        settings = load_settings()
    except ValidationError as e:
        setup_logging()
        logger.critical(f"Invalid configuration (GEMINI_API_KEY and DISCORD_BOT_TOKEN are required):\n{e}")
        sys.exit(1)

    setup_logging(settings.log_path, debug=debug or settings.debug)
    sys.exit(asyncio.run(run(settings)))


if __name__ == "__main__":
    main()
