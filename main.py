"""Application entry point."""

from __future__ import annotations

import asyncio
from pathlib import Path

from config import load_config
from core import get_logger, setup_logger
from core.app_initializer import ApplicationInitializer
from services import set_main_loop


async def main() -> None:
    """Main application entry point."""
    config = load_config()
    setup_logger(
        level=config.log_level,
        log_file=str(Path(config.log_folder) / "app.log"),
        colored=True
    )

    # Set event loop for services
    loop = asyncio.get_running_loop()
    set_main_loop(loop)

    app = ApplicationInitializer(config)
    await app.initialize()
    await app.run()


def run() -> None:
    setup_logger()
    logger = get_logger("app")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
        raise SystemExit(1)


if __name__ == "__main__":
    run()
