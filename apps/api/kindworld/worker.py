"""
Background worker for delivering queued verification emails.

Usage:
    python -m kindworld.worker

Runs WORKER_CONCURRENCY loops, each with its own database session and worker
id. Loops claim due deliveries with a lease, so several worker processes can
share one queue.
"""

import asyncio
import logging
import os
import socket

from kindworld.core.config import settings
from kindworld.core.structured_logging import build_log_context
from kindworld.db.session import SessionLocal
from kindworld.services import delivery_service
from kindworld.services.email_sender import EmailSender, select_sender

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def make_worker_id(index: int) -> str:
    return f"{socket.gethostname()}-{os.getpid()}-{index}"


async def run_once(
    sender: EmailSender,
    worker_id: str,
    batch_size: int | None = None,
) -> delivery_service.ProcessSummary:
    """Process one batch with a fresh session."""
    with SessionLocal() as db:
        return await delivery_service.process_pending_queue(
            db,
            sender=sender,
            worker_id=worker_id,
            batch_size=batch_size or settings.DELIVERY_BATCH_SIZE,
        )


async def worker_loop(sender: EmailSender, worker_id: str, poll_interval: int) -> None:
    """Claim and process batches until cancelled; sleep when the queue is idle."""
    log_context = build_log_context(worker_id=worker_id, route="worker", method="background")
    logger.info("Worker loop %s starting", worker_id, extra=log_context)

    while True:
        try:
            summary = await run_once(sender, worker_id)
        except Exception:
            logger.exception("Error in worker loop", extra=log_context)
            await asyncio.sleep(poll_interval)
            continue

        if summary.claimed:
            logger.info(
                "Processed %s deliveries (sent=%s retried=%s failed=%s cancelled=%s)",
                summary.claimed,
                summary.sent,
                summary.retried,
                summary.failed,
                summary.cancelled,
                extra=log_context,
            )
            # Queue may have more due items; go again without sleeping
            continue

        await asyncio.sleep(poll_interval)


async def run_worker(
    concurrency: int | None = None,
    poll_interval: int | None = None,
    sender: EmailSender | None = None,
) -> None:
    """Run a fixed pool of worker loops."""
    concurrency = concurrency or settings.WORKER_CONCURRENCY
    poll_interval = poll_interval or settings.WORKER_POLL_INTERVAL
    sender = sender or select_sender().sender

    logger.info(
        "Worker starting (concurrency: %s, poll interval: %ss, batch size: %s)",
        concurrency,
        poll_interval,
        settings.DELIVERY_BATCH_SIZE,
    )
    await asyncio.gather(
        *(worker_loop(sender, make_worker_id(i), poll_interval) for i in range(concurrency))
    )


def main() -> None:
    """Entry point for the worker."""
    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(route="worker", method="background"),
        )
        raise


if __name__ == "__main__":
    main()
