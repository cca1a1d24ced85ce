"""
forkman.bot.__main__ — Entry point for ``python -m forkman.bot``
================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (infrastructure settings).
3. Create the SQLAlchemy engine, ensure tables exist, seed the catalog.
4. Warm the in-memory event catalog.
5. Create the ForkmanBot and start it (blocking).
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from forkman.bot.core import ForkmanBot
from forkman.config import load_config
from forkman.database.engine import create_db_engine, init_db
from forkman.engine.catalog import EventCatalog

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("forkman")


def main() -> None:
    """Bootstrap and run the bot."""
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    cfg = load_config(os.getenv("FORKMAN_CONFIG", "config.yaml"))
    logger.info("Config loaded — %s", cfg.bot_name)

    engine = create_db_engine()
    init_db(engine)

    catalog = EventCatalog(engine)
    catalog.load_all()

    bot = ForkmanBot(cfg=cfg, engine=engine, catalog=catalog)

    logger.info("Starting %s bot…", cfg.bot_name)
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
