"""Command-line interface for Watchlist Router.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError

from watchlist_router import __version__
from watchlist_router.config import get_settings
from watchlist_router.exceptions import WatchlistRouterError
from watchlist_router.models import ApprovalStatus, ContentItem, RoutingContext
from watchlist_router.services import Services, build_services
from watchlist_router.utils import configure_logging

logger = structlog.get_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="watchlist-router", description="Watchlist Router")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create database tables if they do not exist")

    # Rule commands
    rules_parser = subparsers.add_parser("rules", help="Inspect router rules")
    rules_sub = rules_parser.add_subparsers(dest="rules_command", required=True)
    list_rules = rules_sub.add_parser("list", help="List router rules, highest order first")
    list_rules.add_argument("--enabled-only", action="store_true", help="Only show enabled rules")
    rules_sub.add_parser("fields", help="Show routable fields and their operators")

    # Routing
    route_parser = subparsers.add_parser("route", help="Route an item described in a JSON file")
    route_parser.add_argument(
        "item",
        type=Path,
        help="JSON file with 'item' and 'context' objects",
    )
    route_parser.add_argument(
        "--submit",
        action="store_true",
        help="Also pass the decisions through the approval gate",
    )

    # Approval commands
    approvals_parser = subparsers.add_parser("approvals", help="Manage approval requests")
    approvals_sub = approvals_parser.add_subparsers(dest="approvals_command", required=True)

    list_approvals = approvals_sub.add_parser("list", help="List approval requests")
    list_approvals.add_argument(
        "--status",
        choices=[s.value for s in ApprovalStatus],
        default=None,
        help="Filter by status",
    )
    list_approvals.add_argument("--user-id", type=int, default=None, help="Filter by requesting user")
    list_approvals.add_argument("--limit", type=int, default=50, help="Max results")

    for name, help_text in (("approve", "Approve a request"), ("reject", "Reject a pending request")):
        decide = approvals_sub.add_parser(name, help=help_text)
        decide.add_argument("request_id")
        decide.add_argument("--admin-id", type=int, required=True, help="Id of the deciding admin")
        decide.add_argument("--notes", default=None, help="Optional notes stored with the decision")

    delete = approvals_sub.add_parser("delete", help="Delete a request")
    delete.add_argument("request_id")

    approvals_sub.add_parser("stats", help="Show counts per status")

    subparsers.add_parser("maintenance", help="Run the expiration sweep and retention cleanup")

    return parser


def _cmd_rules_list(services: Services, args: argparse.Namespace) -> int:
    for rule in services.rules.list_rules(enabled_only=args.enabled_only):
        state = "on" if rule.enabled else "off"
        print(f"{rule.id}\t{state}\t{rule.order}\t{rule.type}\t{rule.target_type}:{rule.target_instance_id}\t{rule.name}")
    return 0


def _cmd_rules_fields(services: Services, args: argparse.Namespace) -> int:
    for evaluator in services.registry.describe():
        print(f"{evaluator['name']} (priority {evaluator['priority']})")
        for field in evaluator["fields"]:
            operators = ", ".join(o["name"] for o in field["operators"])
            print(f"  {field['name']}: {operators}")
    return 0


def _cmd_route(services: Services, args: argparse.Namespace) -> int:
    payload = json.loads(args.item.read_text(encoding="utf-8"))
    item = ContentItem.model_validate(payload["item"])
    context = RoutingContext.model_validate(payload["context"])

    decisions = services.router.route(item, context)
    if not decisions:
        print("No routing rule matched")
    for d in decisions:
        print(f"{d.instance_type}:{d.instance_id}\tpriority={d.priority}\tevaluator={d.evaluator}\trule={d.rule_id}")

    if args.submit:
        outcome = services.gate.submit(item, context, decisions)
        request_id = outcome.request.id if outcome.request else "-"
        print(f"Gate: {outcome.status} (request {request_id}) {outcome.reason or ''}".rstrip())
    return 0


def _cmd_approvals_list(services: Services, args: argparse.Namespace) -> int:
    status = ApprovalStatus(args.status) if args.status else None
    requests, total = services.approvals.list_requests(status=status, user_id=args.user_id, limit=args.limit)
    for r in requests:
        expires = r.expires_at.isoformat() if r.expires_at else "never"
        print(f"{r.id}\t{r.status.value}\t{r.triggered_by.value}\tuser={r.user_id}\texpires={expires}\t{r.content_title}")
    print(f"{len(requests)} of {total} requests")
    return 0


def _cmd_approvals_decide(services: Services, args: argparse.Namespace) -> int:
    if args.approvals_command == "approve":
        request = services.approvals.approve(args.request_id, args.admin_id, args.notes)
    else:
        request = services.approvals.reject(args.request_id, args.admin_id, args.notes)
    print(f"{request.id}: {request.status.value}")
    return 0


def _cmd_approvals_stats(services: Services, args: argparse.Namespace) -> int:
    stats = services.approvals.stats()
    print(f"Pending: {stats.pending}")
    print(f"Approved: {stats.approved}")
    print(f"Auto-approved: {stats.auto_approved}")
    print(f"Rejected: {stats.rejected}")
    print(f"Expired: {stats.expired}")
    print(f"Total: {stats.total_requests}")
    return 0


def _cmd_maintenance(services: Services, args: argparse.Namespace) -> int:
    result = services.approvals.run_maintenance(quota_retention_days=services.settings.quota_cleanup_retention_days)
    if result.sweep.skipped:
        print("Expiration sweep skipped: already running")
    else:
        print(f"Expired: {len(result.sweep.expired)}")
        print(f"Auto-approved: {len(result.sweep.auto_approved)}")
        print(f"Execution failures: {len(result.sweep.execution_failures)}")
    print(f"Deleted requests: {result.cleanup.deleted_requests}")
    print(f"Deleted quota usage rows: {result.cleanup.deleted_quota_usage}")
    return 0


def _dispatch(services: Services, parsed: argparse.Namespace) -> int:
    if parsed.command == "init-db":
        print(f"Schema ready ({services.engine.dialect.name})")
        return 0
    if parsed.command == "rules":
        if parsed.rules_command == "list":
            return _cmd_rules_list(services, parsed)
        if parsed.rules_command == "fields":
            return _cmd_rules_fields(services, parsed)
    if parsed.command == "route":
        return _cmd_route(services, parsed)
    if parsed.command == "approvals":
        if parsed.approvals_command in ("approve", "reject"):
            return _cmd_approvals_decide(services, parsed)
        if parsed.approvals_command == "list":
            return _cmd_approvals_list(services, parsed)
        if parsed.approvals_command == "delete":
            services.approvals.delete(parsed.request_id)
            print(f"Deleted {parsed.request_id}")
            return 0
        if parsed.approvals_command == "stats":
            return _cmd_approvals_stats(services, parsed)
    if parsed.command == "maintenance":
        return _cmd_maintenance(services, parsed)

    logger.error("unknown_command", command=parsed.command)
    return 2


def main(args: list[str] | None = None, services: Services | None = None) -> int:
    """Main entry point for the Watchlist Router CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.
        services: Prebuilt service graph. If None, one is built from settings.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = services.settings if services is not None else get_settings()
    configure_logging(settings.log_level)

    logger.info("watchlist_router_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    services = services or build_services(settings)
    try:
        return _dispatch(services, parsed)
    except (WatchlistRouterError, ValidationError, OSError, json.JSONDecodeError) as exc:
        logger.error("command_failed", command=parsed.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
