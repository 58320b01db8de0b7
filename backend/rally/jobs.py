"""Entry points for the external scheduler (cron, k8s CronJob, ...)."""
import argparse
import logging

from rally.config import settings
from rally.database import SessionLocal
from rally.services import promotion_service

logger = logging.getLogger(__name__)


def run_waitlist_sweep(lookahead_hours=None) -> promotion_service.SweepResult:
    db = SessionLocal()
    try:
        return promotion_service.sweep_waitlists(db, lookahead_hours)
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Promote waitlisted attendees of upcoming events.")
    parser.add_argument(
        "--lookahead-hours",
        type=int,
        default=settings.WAITLIST_SWEEP_LOOKAHEAD_HOURS,
        help="sweep events starting within this many hours (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    result = run_waitlist_sweep(args.lookahead_hours)
    for promotion in result.promotions:
        logger.info("Event %s: promoted %s", promotion.event_id, ", ".join(promotion.promoted_user_ids))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
