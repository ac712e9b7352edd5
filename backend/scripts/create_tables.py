"""Create the brands, locations and offers tables on the configured database.

Run from the backend directory:
    PYTHONPATH=. python scripts/create_tables.py [--drop]

``--drop`` removes the existing tables (and their data) first.
"""

import asyncio
import logging
import sys

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


async def main():
    from brandoffers.database import create_tables, engine

    drop_first = "--drop" in sys.argv

    await create_tables(engine, drop_first=drop_first)
    await engine.dispose()

    logger.info(
        "%s tables on %s.",
        "Re-created" if drop_first else "Created",
        engine.url.render_as_string(hide_password=True),
    )


if __name__ == "__main__":
    asyncio.run(main())
