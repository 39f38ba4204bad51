#!/usr/bin/env python3
"""Command-line interface for the Cellar Tank Ledger API.

Usage examples:
    python scripts/cli.py tanks --occupancy available
    python scripts/cli.py tank FV-1
    python scripts/cli.py create-tank FV-7 --capacity 120
    python scripts/cli.py update-tank FV-7 --new-label FV-7A --capacity 150
    python scripts/cli.py delete-tank FV-7A
    python scripts/cli.py restore-tank FV-7A
    python scripts/cli.py start --tank-id 4 --name "Left Turn IPA" --qty 92
    python scripts/cli.py batches --completed
    python scripts/cli.py batch 1
    python scripts/cli.py add 1 --type-id 5 --qty 200 --note "Pitched WLP001"
    python scripts/cli.py transactions 1 --type-id 2
    python scripts/cli.py transfer 1 BT-1
    python scripts/cli.py complete 1
"""

import argparse
import json
import sys

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0


def format_output(data: object) -> None:
    """Pretty-print a JSON-serialisable object."""
    print(json.dumps(data, indent=2, default=str))


def handle_response(response: httpx.Response) -> dict:
    """Return the JSON body or exit with an error message."""
    try:
        body = response.json()
    except ValueError:
        body = {"detail": response.text}

    if response.status_code >= 400:
        kind = body.get("kind") if isinstance(body, dict) else None
        detail = body.get("detail", "Unknown error") if isinstance(body, dict) else body
        prefix = f"Error {response.status_code}" + (f" ({kind})" if kind else "")
        print(f"{prefix}: {detail}", file=sys.stderr)
        sys.exit(1)

    return body


def cmd_tanks(args: argparse.Namespace, client: httpx.Client) -> None:
    """List tanks, optionally filtered by occupancy."""
    params = {"occupancy": args.occupancy} if args.occupancy else {}
    format_output(handle_response(client.get("/api/tanks/", params=params)))


def cmd_tank(args: argparse.Namespace, client: httpx.Client) -> None:
    """Show one tank by label."""
    format_output(handle_response(client.get(f"/api/tanks/{args.label}")))


def cmd_create_tank(args: argparse.Namespace, client: httpx.Client) -> None:
    """Register a tank."""
    data = {"label": args.label, "capacity": args.capacity}
    format_output(handle_response(client.post("/api/tanks/", json=data)))


def cmd_update_tank(args: argparse.Namespace, client: httpx.Client) -> None:
    """Rename and/or resize a tank."""
    data: dict[str, object] = {}
    if args.new_label:
        data["new_label"] = args.new_label
    if args.capacity:
        data["new_capacity"] = args.capacity
    format_output(handle_response(client.patch(f"/api/tanks/{args.label}", json=data)))


def cmd_delete_tank(args: argparse.Namespace, client: httpx.Client) -> None:
    """Soft-delete a tank."""
    resp = client.delete(f"/api/tanks/{args.label}")
    if resp.status_code == 204:
        print(f"Tank {args.label} deleted successfully.")
    else:
        handle_response(resp)


def cmd_restore_tank(args: argparse.Namespace, client: httpx.Client) -> None:
    """Restore a soft-deleted tank."""
    format_output(handle_response(client.post(f"/api/tanks/{args.label}/restore")))


def cmd_start(args: argparse.Namespace, client: httpx.Client) -> None:
    """Start a batch with its opening transaction."""
    data: dict[str, object] = {
        "tank_id": args.tank_id,
        "name": args.name,
        "initial_quantity": args.qty,
    }
    if args.type_id is not None:
        data["transaction_type_id"] = args.type_id
    if args.note:
        data["note"] = args.note
    format_output(handle_response(client.post("/api/batches/", json=data)))


def cmd_batches(args: argparse.Namespace, client: httpx.Client) -> None:
    """List active (or completed) batches."""
    params = {"completed": "true"} if args.completed else {}
    format_output(handle_response(client.get("/api/batches/", params=params)))


def cmd_batch(args: argparse.Namespace, client: httpx.Client) -> None:
    """Show one batch."""
    format_output(handle_response(client.get(f"/api/batches/{args.id}")))


def cmd_add(args: argparse.Namespace, client: httpx.Client) -> None:
    """Record a transaction against a batch."""
    data: dict[str, object] = {"transaction_type_id": args.type_id, "quantity": args.qty}
    if args.note:
        data["note"] = args.note
    if args.actor_id is not None:
        data["actor_id"] = args.actor_id
    format_output(
        handle_response(client.post(f"/api/batches/{args.id}/transactions", json=data))
    )


def cmd_transactions(args: argparse.Namespace, client: httpx.Client) -> None:
    """List a batch's transactions."""
    params = {"transaction_type_id": args.type_id} if args.type_id is not None else {}
    format_output(
        handle_response(client.get(f"/api/batches/{args.id}/transactions", params=params))
    )


def cmd_transfer(args: argparse.Namespace, client: httpx.Client) -> None:
    """Transfer a batch's contents into another tank."""
    data: dict[str, object] = {"destination_tank_label": args.destination}
    if args.note:
        data["note"] = args.note
    format_output(handle_response(client.post(f"/api/batches/{args.id}/transfer", json=data)))


def cmd_complete(args: argparse.Namespace, client: httpx.Client) -> None:
    """Complete a batch."""
    format_output(handle_response(client.post(f"/api/batches/{args.id}/complete")))


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cli.py",
        description="Cellar Tank Ledger CLI",
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"API base URL (default: {DEFAULT_BASE_URL})",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    # --- tanks ---
    p_tanks = sub.add_parser("tanks", help="List tanks")
    p_tanks.add_argument(
        "--occupancy", choices=["available", "occupied", "deleted"], help="Filter"
    )

    # --- tank ---
    p_tank = sub.add_parser("tank", help="Get tank by label")
    p_tank.add_argument("label", help="Tank label")

    # --- create-tank ---
    p_create = sub.add_parser("create-tank", help="Register a tank")
    p_create.add_argument("label", help="Tank label (letters, digits, - and _)")
    p_create.add_argument("--capacity", required=True, help="Capacity")

    # --- update-tank ---
    p_update = sub.add_parser("update-tank", help="Rename and/or resize a tank")
    p_update.add_argument("label", help="Current tank label")
    p_update.add_argument("--new-label", help="New label")
    p_update.add_argument("--capacity", help="New capacity")

    # --- delete-tank / restore-tank ---
    p_delete = sub.add_parser("delete-tank", help="Soft-delete a tank")
    p_delete.add_argument("label", help="Tank label")
    p_restore = sub.add_parser("restore-tank", help="Restore a soft-deleted tank")
    p_restore.add_argument("label", help="Tank label")

    # --- start ---
    p_start = sub.add_parser("start", help="Start a batch in an empty tank")
    p_start.add_argument("--tank-id", type=int, required=True, help="Tank ID")
    p_start.add_argument("--name", required=True, help="Batch name")
    p_start.add_argument("--qty", required=True, help="Initial quantity")
    p_start.add_argument("--type-id", type=int, help="Opening transaction type ID")
    p_start.add_argument("--note", help="Note on the opening transaction")

    # --- batches / batch ---
    p_batches = sub.add_parser("batches", help="List batches")
    p_batches.add_argument("--completed", action="store_true", help="Completed batches")
    p_batch = sub.add_parser("batch", help="Get batch by ID")
    p_batch.add_argument("id", type=int, help="Batch ID")

    # --- add ---
    p_add = sub.add_parser("add", help="Record a transaction")
    p_add.add_argument("id", type=int, help="Batch ID")
    p_add.add_argument("--type-id", type=int, required=True, help="Transaction type ID")
    p_add.add_argument("--qty", required=True, help="Quantity")
    p_add.add_argument("--note", help="Free-text note")
    p_add.add_argument("--actor-id", type=int, help="Acting user ID")

    # --- transactions ---
    p_txns = sub.add_parser("transactions", help="List a batch's transactions")
    p_txns.add_argument("id", type=int, help="Batch ID")
    p_txns.add_argument("--type-id", type=int, help="Only this transaction type")

    # --- transfer ---
    p_transfer = sub.add_parser("transfer", help="Transfer a batch into another tank")
    p_transfer.add_argument("id", type=int, help="Source batch ID")
    p_transfer.add_argument("destination", help="Destination tank label")
    p_transfer.add_argument("--note", help="Note stored on both transactions")

    # --- complete ---
    p_complete = sub.add_parser("complete", help="Complete a batch")
    p_complete.add_argument("id", type=int, help="Batch ID")

    return parser


DISPATCH = {
    "tanks": cmd_tanks,
    "tank": cmd_tank,
    "create-tank": cmd_create_tank,
    "update-tank": cmd_update_tank,
    "delete-tank": cmd_delete_tank,
    "restore-tank": cmd_restore_tank,
    "start": cmd_start,
    "batches": cmd_batches,
    "batch": cmd_batch,
    "add": cmd_add,
    "transactions": cmd_transactions,
    "transfer": cmd_transfer,
    "complete": cmd_complete,
}


def main(argv: list[str] | None = None, client: httpx.Client | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = DISPATCH.get(args.command) if args.command else None
    if handler is None:
        parser.print_help()
        sys.exit(1)

    if client is not None:
        handler(args, client)
        return

    with httpx.Client(base_url=args.base_url, timeout=DEFAULT_TIMEOUT) as http_client:
        handler(args, http_client)


if __name__ == "__main__":
    main()
