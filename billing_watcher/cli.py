import argparse, logging, sys, time
from .config import WatcherSettings
from .watcher import BillingWatcher

LOG = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Watch GCP billing export costs in BigQuery")
    parser.add_argument("--once", action="store_true", help="fetch once, print and exit")
    parser.add_argument("--project", help="GCP project ID (GCP_BQ_PROJECT_ID)")
    parser.add_argument("--dataset", help="billing export dataset (GCP_BQ_DATASET)")
    parser.add_argument("--credentials", help="service account / credential file path")
    parser.add_argument("--insecure", action="store_true", help="disable TLS certificate verification")
    parser.add_argument("--interval", type=int, help="refresh interval in minutes")
    parser.add_argument("--budget", type=float, help="monthly budget shown in the tooltip")
    parser.add_argument("--language", choices=["auto", "en", "ja"])
    return parser.parse_args(argv)


def settings_from_args(args) -> WatcherSettings:
    return WatcherSettings.from_env(
        project_id=args.project,
        dataset_id=args.dataset,
        credentials_path=args.credentials,
        strict_ssl=False if args.insecure else None,
        refresh_interval_minutes=args.interval,
        monthly_budget=args.budget,
        language=args.language,
    )


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="[billing-watcher] %(asctime)s %(message)s")
    args = parse_args(argv)
    watcher = BillingWatcher(settings_from_args(args))
    if args.once:
        view = watcher.start(schedule=False)
        print(view.text)
        print(view.tooltip)
        return 0 if view.state == "ok" else 1

    watcher.start()
    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        LOG.info("Stopping")
    finally:
        watcher.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
