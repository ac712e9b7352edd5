"""Check offer/location links for inconsistencies.

Reports counters that disagree with their id sets, ``hasOffer`` flags that
disagree with ``offerIds``, and links recorded on only one side. Exits with
status 1 when anything is found. Run while the API is idle.

Run from the backend directory:
    PYTHONPATH=. python scripts/audit_links.py
"""

import asyncio
import logging
import sys

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


async def main() -> int:
    from brandoffers.database import engine
    from brandoffers.record_store import get_store
    from brandoffers.services.link_audit import audit_links

    violations = await audit_links(get_store())
    await engine.dispose()

    for violation in violations:
        logger.warning("%s/%s: %s", violation.table, violation.key, violation.problem)

    logger.info("Found %d link violations.", len(violations))
    return 1 if violations else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
