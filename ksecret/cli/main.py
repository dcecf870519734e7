"""CLI entrypoint for ksecret."""
import os
import sys
import json
import getpass
import argparse
import logging

from ksecret.secrets.domains.models import SyncOutcome
from ksecret.secrets.workflows.sync import SyncReporter

from .validators import validate_secret_name, validate_environment, validate_secret_value

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _load_config(args):
    from ksecret.secrets.domains.config_loader import load_config

    return load_config(project_override=getattr(args, "project", None))


class ConsoleReporter(SyncReporter):
    """Prints sync progress to stdout as it happens."""

    def started(self, environment, namespace, dry_run):
        super().started(environment, namespace, dry_run)
        print(f"-> Syncing secrets for environment '{environment}' to namespace '{namespace}'")
        if dry_run:
            print("  (dry-run mode - no changes will be made)")

    def found(self, count):
        print(f"  Found {count} secret(s) to sync")

    def item_started(self, name):
        print(f"  -> {name}... ", end="", flush=True)

    def item_finished(self, name, outcome):
        super().item_finished(name, outcome)
        if outcome is SyncOutcome.APPLIED:
            print("done")
        elif outcome is SyncOutcome.SKIPPED_DRY_RUN:
            print("skipped (dry-run)")
        else:
            print("failed")


def cmd_version(args):
    """Show version information."""
    print(f"ksecret {VERSION}")


def cmd_init(args):
    """Write the config file with the given project ID."""
    from ksecret.secrets.domains.config_loader import save_config

    config_path = save_config(args.init_project)
    print(f"Configuration saved to {config_path}")
    print(f"  GCP Project ID: {args.init_project}")


def cmd_sync(args):
    """Sync all secrets of an environment to a Kubernetes namespace."""
    from ksecret.secrets.workflows.sync import sync_secrets

    validate_environment(args.environment)
    config = _load_config(args)

    result = sync_secrets(
        config,
        args.environment,
        namespace=args.namespace,
        context=args.context,
        dry_run=args.dry_run,
        reporter=ConsoleReporter(),
    )

    if result.nothing_to_sync:
        print(f"! No secrets found for environment '{args.environment}'")
    elif result.dry_run:
        print(f"\nDry run: {result.skipped} secret(s) would be synced to namespace '{result.namespace}'")
    else:
        print(f"\nOK Successfully synced {result.applied} secret(s) to namespace '{result.namespace}'")


def cmd_get(args):
    """Get a secret from GCP Secret Manager."""
    from ksecret.secrets.workflows.secret_operations import get_secret

    validate_secret_name(args.name)
    validate_environment(args.env)
    config = _load_config(args)

    value = get_secret(config, args.env, args.name, use_cache=not args.no_cache)

    if args.output == "json":
        print(json.dumps({"name": args.name, "environment": args.env, "value": value}, indent=2))
    else:
        print(value)


def _read_value(args):
    if args.stdin:
        return sys.stdin.read().rstrip()
    if args.value is not None:
        return args.value
    return getpass.getpass("Enter secret value: ").rstrip()


def cmd_set(args):
    """Create or update a secret in GCP Secret Manager."""
    from ksecret.secrets.workflows.secret_operations import set_secret

    validate_secret_name(args.name)
    validate_environment(args.env)
    value = _read_value(args)
    validate_secret_value(value)
    config = _load_config(args)

    set_secret(config, args.env, args.name, value)
    print(f"OK Secret '{args.name}' set for environment '{args.env}'")


def cmd_list(args):
    """List all secrets for an environment."""
    from ksecret.secrets.workflows.secret_operations import list_secrets

    validate_environment(args.env)
    config = _load_config(args)
    secrets = list_secrets(config, args.env)

    if args.output == "json":
        output = [
            {"name": s.name, "environment": s.environment, "created_at": s.created_at}
            for s in secrets
        ]
        print(json.dumps(output, indent=2))
        return

    if not secrets:
        print(f"! No secrets found for environment '{args.env}'")
        return

    print(f"-> Secrets for environment '{args.env}':\n")
    print(f"  {'NAME':<30} {'CREATED':<20}")
    print(f"  {'-' * 50}")
    for secret in secrets:
        created = (secret.created_at or "-")[:19]
        print(f"  {secret.name:<30} {created:<20}")
    print(f"\n  Total: {len(secrets)} secret(s)")


def cmd_delete(args):
    """Delete a secret from GCP Secret Manager."""
    from ksecret.secrets.workflows.secret_operations import delete_secret

    validate_secret_name(args.name)
    validate_environment(args.env)

    if not args.force:
        response = input(
            f"? Are you sure you want to delete secret '{args.name}' "
            f"from environment '{args.env}'? [y/N] "
        ).strip().lower()
        if response != 'y':
            print("Aborted.")
            return

    config = _load_config(args)
    delete_secret(config, args.env, args.name)
    print(f"OK Secret '{args.name}' deleted from environment '{args.env}'")


def cmd_status(args):
    """List secrets in a namespace that ksecret manages."""
    from ksecret.secrets.domains.errors import NamespaceNotFoundError
    from ksecret.secrets.domains.k8s_client import KubeClient

    validate_environment(args.environment)
    namespace = args.namespace or args.environment
    cluster = KubeClient(args.context)

    if not cluster.namespace_exists(namespace):
        raise NamespaceNotFoundError(namespace)

    names = cluster.list_managed_secrets(namespace)
    if not names:
        print(f"! No ksecret-managed secrets in namespace '{namespace}'")
        return

    print(f"-> Managed secrets in namespace '{namespace}':\n")
    for name in names:
        print(f"  {name}")
    print(f"\n  Total: {len(names)} secret(s)")


def cmd_cache_clear(args):
    """Remove all cached secret values."""
    from ksecret.secrets.workflows.secret_operations import clear_cache

    count = clear_cache()
    print(f"Cache cleared ({count} entr{'y' if count == 1 else 'ies'} removed)")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="ksecret",
        description="ksecret - Kubernetes secrets management backed by Google Cloud Secret Manager",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (authentication, network, secret not found, etc.)
  2 - Usage error (invalid arguments, invalid secret name format, etc.)

Environment variables:
  KSECRET_GCP_PROJECT  - GCP project ID (overrides config file)
  KSECRET_CONFIG_FILE  - Config file path (default: ~/.config/ksecret/config.yml)
  KSECRET_CACHE_FILE   - Cache file path (default: ~/.config/ksecret/cache.json)
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--project",
        default=None,
        help="Google Cloud project ID (overrides config file, env: KSECRET_GCP_PROJECT)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of ksecret"
    )

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Initialize configuration file",
        description="Write ~/.config/ksecret/config.yml (or $KSECRET_CONFIG_FILE) with the given project"
    )
    init_parser.add_argument(
        "--project",
        dest="init_project",
        required=True,
        help="Google Cloud project ID"
    )

    # sync command
    sync_parser = subparsers.add_parser(
        "sync",
        help="Sync all secrets for an environment to a Kubernetes namespace",
        description="""
Sync every secret named '<prefix>-<ENV>-<name>' into the target namespace.

Each secret is replaced (deleted, then recreated) with label
app.kubernetes.io/managed-by=ksecret. JSON or YAML mapping values become one
field per key; anything else is stored under the single field 'value'.

The sync stops at the first error. Secrets applied before it stay applied;
running the sync again is safe.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sync_parser.add_argument("environment", metavar="ENV", help="Environment name (e.g. dev, staging, prod)")
    sync_parser.add_argument("-n", "--namespace", help="Target namespace (defaults to environment name)")
    sync_parser.add_argument("-c", "--context", help="Kubernetes context to use (defaults to current context)")
    sync_parser.add_argument("--dry-run", action="store_true", help="Show what would be synced without making changes")

    # get command
    get_parser = subparsers.add_parser(
        "get",
        help="Get a secret value",
        description="""
Fetch a secret from GCP Secret Manager.

Values are cached locally for five minutes; use --no-cache to bypass the cache.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    get_parser.add_argument("name", metavar="NAME", help="Secret name (format: [a-zA-Z0-9_-]+)")
    get_parser.add_argument("-e", "--env", required=True, help="Environment name")
    get_parser.add_argument("-o", "--output", choices=["text", "json"], default="text", help="Output format")
    get_parser.add_argument("--no-cache", action="store_true", help="Skip cache and fetch directly from GCP")

    # set command
    set_parser = subparsers.add_parser(
        "set",
        help="Set a secret value",
        description="Create the secret if needed and add a new version. Prompts for the value unless --value or --stdin is given."
    )
    set_parser.add_argument("name", metavar="NAME", help="Secret name (format: [a-zA-Z0-9_-]+)")
    set_parser.add_argument("-e", "--env", required=True, help="Environment name")
    value_group = set_parser.add_mutually_exclusive_group()
    value_group.add_argument("--value", help="Secret value")
    value_group.add_argument("--stdin", action="store_true", help="Read value from stdin")

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List all secrets for an environment",
        description="List secrets stored in GCP Secret Manager for an environment"
    )
    list_parser.add_argument("-e", "--env", required=True, help="Environment name")
    list_parser.add_argument("-o", "--output", choices=["table", "json"], default="table", help="Output format")

    # delete command
    delete_parser = subparsers.add_parser(
        "delete",
        help="Delete a secret",
        description="Delete a secret and all its versions from GCP Secret Manager"
    )
    delete_parser.add_argument("name", metavar="NAME", help="Secret name")
    delete_parser.add_argument("-e", "--env", required=True, help="Environment name")
    delete_parser.add_argument("-f", "--force", action="store_true", help="Skip confirmation prompt")

    # status command
    status_parser = subparsers.add_parser(
        "status",
        help="List ksecret-managed secrets in a namespace",
        description="Show the secrets in a namespace labelled app.kubernetes.io/managed-by=ksecret"
    )
    status_parser.add_argument("environment", metavar="ENV", help="Environment name")
    status_parser.add_argument("-n", "--namespace", help="Namespace (defaults to environment name)")
    status_parser.add_argument("-c", "--context", help="Kubernetes context to use")

    # cache command with subcommands
    cache_parser = subparsers.add_parser(
        "cache",
        help="Local cache operations",
        description="Manage the local secret cache"
    )
    cache_subparsers = cache_parser.add_subparsers(dest="cache_command")
    cache_subparsers.add_parser(
        "clear",
        help="Remove all cached secret values",
        description="Delete every entry from the local cache file"
    )

    return parser, cache_parser


COMMANDS = {
    "version": cmd_version,
    "init": cmd_init,
    "sync": cmd_sync,
    "get": cmd_get,
    "set": cmd_set,
    "list": cmd_list,
    "delete": cmd_delete,
    "status": cmd_status,
}


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (authentication, network, secret not found, etc.)
        2 - Usage errors (invalid arguments, invalid secret name format, etc.)
    """
    parser, cache_parser = build_parser()
    args = parser.parse_args(argv)

    if args.project is None:
        args.project = os.getenv("KSECRET_GCP_PROJECT") or None

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "cache":
            if args.cache_command == "clear":
                cmd_cache_clear(args)
            else:
                cache_parser.print_help()
                sys.exit(2)
        else:
            COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
