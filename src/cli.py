"""Console entry point for the managed instance group adapter CLI."""

from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Dict, List, Optional

import google.auth.exceptions

from clients import ComputeRestClient
from config import ProviderConfig
from errors import AdapterError
from instance_group_manager import InstanceGroupManagerResource
from log_utils import setup_logging
from models import InstanceGroupManager
from resource_id import InstanceGroupManagerId

logger = logging.getLogger(__name__)

COMMANDS = ("create", "read", "update", "delete", "import")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Manage Compute Engine managed instance groups from JSON configuration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  # Create a group described in igm.json\n"
            "  python3 main.py create --project my-project --zone europe-west2-a --file igm.json\n\n"
            "  # Apply changes to an existing group\n"
            "  python3 main.py update --id my-project/europe-west2-a/web --file igm.json\n\n"
            "  # Import a group and print its configuration\n"
            "  python3 main.py import --id my-project/europe-west2-a/web\n\n"
            "  # Delete a group, waiting for its instances to drain\n"
            "  python3 main.py delete --id my-project/europe-west2-a/web --timeout 1800"
        ),
    )
    parser.add_argument("command", choices=COMMANDS, help="Lifecycle operation")
    parser.add_argument("--project", help="Default GCP project ID")
    parser.add_argument("--region", help="Region searched when the zone is unknown")
    parser.add_argument("--zone", help="Default zone (e.g. europe-west2-a)")
    parser.add_argument(
        "--file", help="JSON configuration of the group (create, update)"
    )
    parser.add_argument(
        "--id", help="Group identifier: {project}/{zone}/{name} or {name}"
    )
    parser.add_argument("--timeout", type=int, default=900)
    parser.add_argument("--poll-interval", type=int, default=5)
    parser.add_argument("--log-file", default="igm-adapter.log")
    parser.add_argument("--verbose", action="store_true")
    return parser


def _load_config(path: str) -> InstanceGroupManager:
    with open(path) as f:
        return InstanceGroupManager.from_dict(json.load(f))


def _require(args: argparse.Namespace, *names: str) -> None:
    for name in names:
        if not getattr(args, name):
            raise AdapterError(f"--{name} is required for '{args.command}'")


def _lookup(resource: InstanceGroupManagerResource, id_: str) -> InstanceGroupManager:
    igm_id = InstanceGroupManagerId.decode(id_)
    return resource.read(InstanceGroupManager(name=igm_id.name, id=id_))


def run_command(
    resource: InstanceGroupManagerResource, args: argparse.Namespace
) -> Optional[Dict[str, Any]]:
    """
    Execute one lifecycle command.

    Returns:
        The resulting group document, or None when the group does not exist
    """
    if args.command == "create":
        _require(args, "file")
        return resource.create(_load_config(args.file)).to_dict()

    if args.command == "import":
        _require(args, "id")
        igm = resource.read(resource.import_state(args.id))
        return igm.to_dict() if igm.id else None

    _require(args, "id")
    current = _lookup(resource, args.id)
    if not current.id:
        return None

    if args.command == "read":
        return current.to_dict()

    if args.command == "update":
        _require(args, "file")
        return resource.update(current, _load_config(args.file)).to_dict()

    resource.delete(current)
    return current.to_dict()


def main(argv: List[str] | None = None) -> int:
    """CLI main for console_scripts entry point."""
    parser = build_parser()
    args = parser.parse_args(args=argv)

    setup_logging(verbose=args.verbose, log_file=args.log_file)

    config = ProviderConfig.from_args(args)

    try:
        resource = InstanceGroupManagerResource(ComputeRestClient(), config)
        result = run_command(resource, args)
    except AdapterError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except (ValueError, KeyError, TypeError) as e:
        # malformed JSON or a configuration document missing required keys
        logger.error(f"{args.command} failed: invalid configuration: {e!r}")
        return 1
    except google.auth.exceptions.DefaultCredentialsError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    if result is None:
        logger.warning(f"Instance Group Manager {args.id!r} does not exist")
    print(json.dumps(result, indent=2))
    return 0
