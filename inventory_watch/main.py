from __future__ import annotations

import logging
import random
import threading
from typing import Optional

from . import catalog, config, notifier
from .monitor import PollingController, PollState


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def run_forever(
    controller: PollingController,
    interval: int,
    stop: Optional[threading.Event] = None,
) -> None:
    """Poll every `interval` seconds (plus a little jitter) until `stop` is set."""
    logger = logging.getLogger(__name__)
    stop = stop or threading.Event()
    failures = 0
    while not stop.is_set():
        outcome = controller.poll()
        if outcome is PollState.FAILED:
            failures += 1
            logger.info("No update this cycle (%d consecutive failure(s))", failures)
        elif outcome is PollState.SUCCESS:
            failures = 0

        jitter = random.uniform(0, min(5, interval * 0.2))
        logger.debug("Sleeping %.1fs before next poll", interval + jitter)
        stop.wait(interval + jitter)


def main() -> None:
    """Initialise and run the polling loop."""
    config.validate()
    setup_logging()
    logger = logging.getLogger(__name__)

    preferences = config.load_preferences()
    sku_data = catalog.sku_data_for_country(preferences.preferred_country)
    store = catalog.find_store(preferences.preferred_store_number)

    logger.info(
        "Watching %d SKU(s) for %s near store %s (%s); %d preferred",
        len(sku_data.ordered_skus),
        sku_data.country,
        preferences.preferred_store_number,
        f"{store.store_name}, {store.city}" if store else "not in bundled store list",
        len(preferences.preferred_skus),
    )

    controller = PollingController(sku_data, preferences, sink=notifier.build_sink())
    stop = threading.Event()
    worker = threading.Thread(
        target=run_forever,
        args=(controller, config.POLL_INTERVAL_SECONDS, stop),
        name="inventory-poll",
        daemon=True,
    )
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=1)
    except KeyboardInterrupt:
        logger.info("Stopping…")
        stop.set()
        controller.cancel()
        worker.join(timeout=5)
    finally:
        controller.close()


if __name__ == "__main__":
    main()
