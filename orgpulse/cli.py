"""
orgpulse CLI

Usage:
    orgpulse init-db                              # Create the schema
    orgpulse load FILE                            # Import entities and events (JSON)
    orgpulse detect --org ORG [--family F]        # Run pattern detection
    orgpulse dispatch --org ORG [--dry-run]       # Send pending alerts
    orgpulse alerts --org ORG [--status S]        # List alerts
    orgpulse ack ALERT_ID --user U                # Acknowledge an alert
    orgpulse resolve ALERT_ID                     # Resolve an alert
    orgpulse subscriptions --org ORG              # List subscriptions
    orgpulse subscribe FILE                       # Create a subscription (JSON)
    orgpulse unsubscribe SUBSCRIPTION_ID          # Deactivate a subscription
    orgpulse metrics [--json]                     # Dump in-process metrics
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from orgpulse import config
from orgpulse.cancellation import CancellationToken
from orgpulse.errors import OrgPulseError
from orgpulse.models import DetectionOptions, Entity, EntityType, Event, SubscriptionInput, parse_datetime
from orgpulse.models.jobs import ProgressUpdate
from orgpulse.observability import configure_logging, get_registry
from orgpulse.scheduler import build_pipeline

logger = logging.getLogger(__name__)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def _read_json(path: str):
    with open(Path(path)) as f:
        return json.load(f)


def cmd_init_db(args):
    """Create the database schema."""
    pipeline = build_pipeline(args.db)
    print(f"Database ready at {pipeline.db.db_path}")
    return 0


def cmd_load(args):
    """Import entities and events from a JSON document."""
    data = _read_json(args.file)
    pipeline = build_pipeline(args.db)

    entities = [
        Entity(
            organization_id=e["organization_id"],
            entity_type=EntityType(e["entity_type"]),
            entity_id=e["entity_id"],
            name=e.get("name", ""),
            email=e.get("email", ""),
            department=e.get("department"),
        )
        for e in data.get("entities", [])
    ]
    events = []
    for e in data.get("events", []):
        timestamp = parse_datetime(e.get("timestamp"))
        if timestamp is None:
            logger.warning("Skipping event with bad timestamp: %r", e.get("timestamp"))
            continue
        events.append(
            Event(
                organization_id=e["organization_id"],
                actor_id=e["actor_id"],
                timestamp=timestamp,
                event_type=e["event_type"],
                metadata=e.get("metadata") or {},
            )
        )

    n_entities = pipeline.directory.upsert_entities(entities)
    n_events = pipeline.events.add_events(events)
    print(f"Loaded {n_entities} entities and {n_events} events")
    return 0


def cmd_detect(args):
    """Run pattern detection for one organization."""
    try:
        options = DetectionOptions(
            lookback_days=args.lookback_days,
            baseline_days=args.baseline_days,
            sensitivity=args.sensitivity,
        )
    except ValidationError as e:
        print(f"Invalid options: {e}", file=sys.stderr)
        return 2

    pipeline = build_pipeline(args.db)
    job_id = pipeline.jobs.create_job(args.org, args.family, options) if args.track else None

    def progress(update: ProgressUpdate) -> None:
        print(f"[{update.current}/{update.total}] {update.message}", file=sys.stderr)

    token = CancellationToken(timeout=args.timeout)
    summary = pipeline.processor.run_detection(
        args.org,
        scope=args.family,
        options=options,
        progress=progress,
        token=token,
        analysis_job_id=job_id,
    )
    _print_json(summary.to_dict())
    return 1 if summary.failed_families else 0


def cmd_dispatch(args):
    """Send notifications for pending alerts."""
    pipeline = build_pipeline(args.db, dry_run=args.dry_run)
    summary = pipeline.dispatch(args.org, token=CancellationToken(timeout=args.timeout))
    _print_json(summary.to_dict())
    return 0


def cmd_alerts(args):
    """List alerts."""
    pipeline = build_pipeline(args.db)
    alerts = pipeline.alert_engine.list_alerts(
        args.org,
        statuses=[args.status] if args.status else None,
        limit=args.limit,
    )
    if not alerts:
        print("No alerts")
        return 0
    for alert in alerts:
        print(f"{alert.id}  {alert.severity:<8}  {alert.status:<12}  {alert.title}")
    return 0


def cmd_ack(args):
    pipeline = build_pipeline(args.db)
    alert = pipeline.alert_engine.acknowledge(args.alert_id, args.user)
    print(f"{alert.id} {alert.status} by {alert.acknowledged_by}")
    return 0


def cmd_resolve(args):
    pipeline = build_pipeline(args.db)
    alert = pipeline.alert_engine.resolve(args.alert_id)
    print(f"{alert.id} {alert.status}")
    return 0


def cmd_subscriptions(args):
    """List subscriptions."""
    pipeline = build_pipeline(args.db)
    subscriptions = pipeline.alert_engine.list_subscriptions(args.org, include_inactive=args.all)
    _print_json([s.to_dict() for s in subscriptions])
    return 0


def cmd_subscribe(args):
    """Create a subscription from a JSON document."""
    try:
        payload = SubscriptionInput.model_validate(_read_json(args.file))
    except ValidationError as e:
        print(f"Invalid subscription: {e}", file=sys.stderr)
        return 2
    pipeline = build_pipeline(args.db)
    subscription = pipeline.alert_engine.create_subscription(payload.to_subscription())
    print(subscription.id)
    return 0


def cmd_unsubscribe(args):
    pipeline = build_pipeline(args.db)
    if not pipeline.alert_engine.delete_subscription(args.subscription_id):
        print(f"Subscription {args.subscription_id} not found", file=sys.stderr)
        return 1
    print(f"{args.subscription_id} deactivated")
    return 0


def cmd_metrics(args):
    registry = get_registry()
    if args.json:
        _print_json(registry.to_dict())
    else:
        print(registry.to_prometheus(), end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orgpulse", description="Organizational pattern detection")
    parser.add_argument("--db", help="SQLite database path (default: $ORGPULSE_DB)")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # init-db
    subparsers.add_parser("init-db", help="Create the database schema")

    # load
    p = subparsers.add_parser("load", help="Import entities and events")
    p.add_argument("file", help="JSON file with 'entities' and 'events' lists")

    # detect
    p = subparsers.add_parser("detect", help="Run pattern detection")
    p.add_argument("--org", required=True, help="Organization id")
    p.add_argument(
        "--family", default="all", choices=["burnout", "degradation", "conflict", "all"]
    )
    p.add_argument("--lookback-days", type=int, help="Analysis window length")
    p.add_argument("--baseline-days", type=int, help="Baseline window length")
    p.add_argument("--sensitivity", default="medium", choices=["low", "medium", "high"])
    p.add_argument("--timeout", type=float, help="Cancel the run after this many seconds")
    p.add_argument("--track", action="store_true", help="Record the run in analysis_jobs")

    # dispatch
    p = subparsers.add_parser("dispatch", help="Send pending alerts")
    p.add_argument("--org", required=True, help="Organization id")
    p.add_argument("--dry-run", action="store_true", help="Log payloads instead of sending")
    p.add_argument("--timeout", type=float, help="Stop dispatching after this many seconds")

    # alerts
    p = subparsers.add_parser("alerts", help="List alerts")
    p.add_argument("--org", required=True, help="Organization id")
    p.add_argument("--status", choices=["pending", "sent", "acknowledged", "resolved", "expired"])
    p.add_argument("--limit", type=int, default=50, help="Max alerts")

    # ack
    p = subparsers.add_parser("ack", help="Acknowledge an alert")
    p.add_argument("alert_id", help="Alert id")
    p.add_argument("--user", required=True, help="Acknowledging user")

    # resolve
    p = subparsers.add_parser("resolve", help="Resolve an alert")
    p.add_argument("alert_id", help="Alert id")

    # subscriptions
    p = subparsers.add_parser("subscriptions", help="List subscriptions")
    p.add_argument("--org", required=True, help="Organization id")
    p.add_argument("--all", action="store_true", help="Include deactivated subscriptions")

    # subscribe
    p = subparsers.add_parser("subscribe", help="Create a subscription")
    p.add_argument("file", help="JSON subscription document")

    # unsubscribe
    p = subparsers.add_parser("unsubscribe", help="Deactivate a subscription")
    p.add_argument("subscription_id", help="Subscription id")

    # metrics
    p = subparsers.add_parser("metrics", help="Dump metrics")
    p.add_argument("--json", action="store_true", help="JSON instead of Prometheus text")

    return parser


COMMANDS = {
    "init-db": cmd_init_db,
    "load": cmd_load,
    "detect": cmd_detect,
    "dispatch": cmd_dispatch,
    "alerts": cmd_alerts,
    "ack": cmd_ack,
    "resolve": cmd_resolve,
    "subscriptions": cmd_subscriptions,
    "subscribe": cmd_subscribe,
    "unsubscribe": cmd_unsubscribe,
    "metrics": cmd_metrics,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    json_logs = {"true": True, "false": False}.get(config.LOG_JSON.lower())
    configure_logging(args.log_level, json_format=json_logs)
    try:
        return COMMANDS[args.command](args)
    except OrgPulseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
