"""Entry point for `python -m chatbridge`."""

from __future__ import annotations

import asyncio
import logging
import sys

from dotenv import load_dotenv


def main() -> None:
    # Load .env from canonical locations before anything else.
    load_dotenv("config/.env")
    load_dotenv()

    from chatbridge.config import get_settings, load_config
    from chatbridge.errors import ConfigError, StartupError

    try:
        settings = get_settings()
    except Exception as e:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger("chatbridge").error("Invalid environment settings: %s", e)
        sys.exit(1)

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    log = logging.getLogger("chatbridge")

    try:
        config = load_config(settings.BRIDGE_CONFIG, settings)
    except ConfigError as e:
        log.error("Configuration error: %s", e)
        log.error("Set BRIDGE_CONFIG to the path of a valid config.json.")
        sys.exit(1)

    from chatbridge.bridge import Bridge
    from chatbridge.connections.discord_gateway import DiscordGateway
    from chatbridge.connections.irc_gateway import IrcGateway

    async def _run() -> None:
        bridge = Bridge(
            config,
            DiscordGateway(config.discord_config.bot_token),
            IrcGateway(config.irc_config),
            receive_error_delay=settings.RECEIVE_ERROR_DELAY,
        )
        await bridge.run()

    try:
        asyncio.run(_run())
    except StartupError as e:
        log.error("Startup failed: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down.")
    log.info("Bridge stopped.")


if __name__ == "__main__":
    main()
