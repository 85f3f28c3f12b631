import argparse
import logging
import sys

from tawba.core.app import TawbaApp
from tawba.core.dates import format_time_for_display, today_iso
from tawba.tracker.accounting import total_remaining
from tawba.tracker.errors import TrackerError


def setup_basic_logging():
    """Setup basic stdout logging before config is loaded"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:  # Only add handler if none exists
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        ))
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG)
        logging.debug("Basic logging initialized")


def print_summary(app: TawbaApp) -> None:
    snapshot = app.tracker.snapshot()
    summaries = app.tracker.summaries(snapshot=snapshot)
    projection = app.tracker.projection(snapshot=snapshot)
    print(f"Qada summary for {today_iso()}")
    for summary in summaries:
        print(
            f"  {summary.prayer.value:<8} remaining {summary.remaining:>6}"
            f"  repaid {summary.total_qada_prayed:>6}  on time {summary.total_current_prayed:>5}"
        )
    print(f"  total remaining: {total_remaining(summaries)}")
    if projection.projected_completion_date:
        print(f"  {projection.daily_average}/day, done by {projection.projected_completion_date.isoformat()}")
    else:
        print("  no repayments logged yet")
    for log in snapshot.logs[:5]:
        print(f"  {log.date_iso} {format_time_for_display(log.logged_at):>8} {log.type.value:<7} {log.prayer.value} x{log.count}")


def main(argv=None) -> int:
    setup_basic_logging()

    parser = argparse.ArgumentParser(description='Tawba qada prayer tracker')
    parser.add_argument('--config',
                        help='Path to config file (default: ~/.tawba/config.yaml)')
    parser.add_argument('command', nargs='?', default='serve', choices=['serve', 'summary'],
                        help='serve the HTTP API (default) or print the current summary')

    args = parser.parse_args(argv)

    app = TawbaApp(config_path=args.config)
    try:
        if args.command == 'summary':
            print_summary(app)
        else:
            app.run()
    except TrackerError as e:
        logging.error(f"{e.code}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
