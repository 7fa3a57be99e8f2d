"""CLI entrypoint for agent-passkit."""
import sys
import argparse
import logging
from pathlib import Path

from .validators import split_args, validate_secret_name
from agent_passkit.secrets.domains.errors import ExitCode, InsertError

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def cmd_version(args):
    """Show version information."""
    print(f"agent-passkit {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from agent_passkit.secrets.domains.preferences import set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path and the effective store options."""
    from agent_passkit.secrets.domains.config_loader import ConfigError, default_config_path
    from agent_passkit.secrets.domains.options import Options, describe
    from agent_passkit.secrets.domains.preferences import get_all_preferences, get_preference
    from agent_passkit.secrets.workflows.secret_operations import effective_options

    config_path_pref = get_preference("config_path")

    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from preference, but file not found): {config_path}")
        print("Source: preference")
    else:
        default_config = default_config_path()
        print(f"Config path: {default_config}")
        print("Source: default" if default_config.exists() else "Source: default (file not found)")

    stored = get_all_preferences()
    if stored:
        print("\nPreferences:")
        for name, value in sorted(stored.items()):
            print(f"  {name}: {value}")

    try:
        options = effective_options(Options(is_terminal=sys.stdout.isatty()))
    except (ConfigError, FileNotFoundError) as e:
        logger.debug(f"Not showing options: {e}")
        return

    print("\nEffective options:")
    for name, value in describe(options).items():
        print(f"  {name}: {value}")


def cmd_config_clear(args):
    """Clear config path preference."""
    from agent_passkit.secrets.domains.config_loader import default_config_path
    from agent_passkit.secrets.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_secrets_get(args):
    """Print a secret's password, or a single field of it."""
    from agent_passkit.secrets.workflows.secret_operations import get_secret

    validate_secret_name(args.secret_name)
    value = get_secret(args.secret_name, args.key)

    if value is None:
        what = f"Key '{args.key}' of secret" if args.key else "Secret"
        print(f"Error: {what} '{args.secret_name}' not found", file=sys.stderr)
        sys.exit(1)

    if args.quiet:
        print(value)
    else:
        label = f"{args.secret_name}:{args.key}" if args.key else args.secret_name
        print(f"Secret '{label}': {value}")
    sys.exit(0)


def cmd_secrets_insert(args):
    """Insert a secret from stdin, a prompt or an editor."""
    from agent_passkit.secrets.domains.options import Options
    from agent_passkit.secrets.domains.session import detect_session
    from agent_passkit.secrets.workflows.secret_operations import build_inserter

    positional, metadata = split_args(args.args)
    name = positional[0] if positional else ""
    key = positional[1] if len(positional) > 1 else ""
    if len(positional) > 2:
        print(f"Error: Unexpected arguments: {' '.join(positional[2:])}", file=sys.stderr)
        sys.exit(2)

    if name:
        validate_secret_name(name)

    session = detect_session(interactive=not args.no_interactive)
    overrides = Options(is_terminal=session.is_terminal)
    inserter = build_inserter(session, overrides, editor=args.editor)

    inserter.insert(
        name,
        key,
        echo=args.echo,
        multiline=args.multiline,
        force=args.force,
        append=args.append,
        metadata=metadata,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="passkit",
        description="agent-passkit CLI - password store on GCP Secret Manager",
        epilog="""
Exit codes:
  0  - Success
  1  - Runtime error (network, editor, secret not found, etc.)
  2  - Usage error (invalid arguments, invalid secret name format, etc.)
  3  - Aborted by user
  9  - No secret name given
  11 - Existing secret could not be read
  12 - Secret could not be written
  16 - Configuration error
  18 - Input could not be read

Environment variables:
  GCP_PROJECT - GCP project ID (overrides config file)
  EDITOR      - Editor for 'secrets insert --multiline'

Configuration:
  Default location: ~/.config/agent-passkit/config.yml
  Custom path: Set with 'passkit config set-path <path>'
  View current: Run 'passkit config show'
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of agent-passkit"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage agent-passkit configuration"
    )
    config_parser.set_defaults(print_command_help=config_parser.print_help)
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="""
Set the configuration file path preference.

This stores the absolute path to your config file in:
~/.config/agent-passkit/preferences.json
        """
    )
    config_set_path_parser.add_argument("path", help="Path to config file")

    config_subparsers.add_parser(
        "show",
        help="Show current config path and effective options",
        description="""
Display the configuration file path, its source, and the store options
in effect once the config file has been applied.

Sources:
  - preference: Path set via 'config set-path'
  - default: Default XDG location (~/.config/agent-passkit/config.yml)
        """
    )

    config_subparsers.add_parser(
        "clear",
        help="Clear config path preference",
        description="Remove the config path preference; the default location will be used."
    )

    # secrets command
    secrets_parser = subparsers.add_parser(
        "secrets",
        help="Secret management operations",
        description="Manage secrets in the password store"
    )
    secrets_parser.set_defaults(print_command_help=secrets_parser.print_help)
    secrets_subparsers = secrets_parser.add_subparsers(dest="secrets_command")

    get_parser = secrets_subparsers.add_parser(
        "get",
        help="Get a secret value",
        description="Print a secret's password, or a single field when KEY is given."
    )
    get_parser.add_argument("secret_name", help="Name of the secret (e.g. web/github)")
    get_parser.add_argument("key", nargs="?", help="Field to print instead of the password")
    get_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the value (useful for scripts)"
    )

    insert_parser = secrets_subparsers.add_parser(
        "insert",
        help="Insert or update a secret",
        description="""
Insert a new secret or update an existing one.

  passkit secrets insert NAME [KEY] [key=value ...]

Input source, in order of precedence:
  1. KEY given: set that single field (prompted for, or read from stdin)
  2. stdin piped: store the piped content (--append adds to the existing secret)
  3. --multiline: edit the secret in $EDITOR
  4. otherwise: prompt for the password

key=value pairs are added to the secret's fields.
Existing secrets are only overwritten with --force or after confirmation.
        """
    )
    insert_parser.add_argument("args", nargs="*", metavar="NAME [KEY] [key=value ...]")
    insert_parser.add_argument("-e", "--echo", action="store_true", help="Show the password while typing")
    insert_parser.add_argument("-m", "--multiline", action="store_true", help="Edit the secret in an editor")
    insert_parser.add_argument("-f", "--force", action="store_true", help="Overwrite without asking and accept all recipients")
    insert_parser.add_argument("-a", "--append", action="store_true", help="Append piped input to an existing secret")
    insert_parser.add_argument("--editor", help="Editor to use with --multiline (default: $EDITOR)")
    insert_parser.add_argument("--no-interactive", action="store_true", help="Never prompt for input")

    return parser


def main():
    """Main CLI entrypoint.

    Exit codes are listed in ExitCode; argparse usage errors exit with 2.
    """
    from agent_passkit.secrets.domains.config_loader import ConfigError

    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(ExitCode.USAGE)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            if args.config_command == "set-path":
                cmd_config_set_path(args)
            elif args.config_command == "show":
                cmd_config_show(args)
            elif args.config_command == "clear":
                cmd_config_clear(args)
            else:
                args.print_command_help()
                sys.exit(ExitCode.USAGE)
        elif args.command == "secrets":
            if args.secrets_command == "get":
                cmd_secrets_get(args)
            elif args.secrets_command == "insert":
                cmd_secrets_insert(args)
            else:
                args.print_command_help()
                sys.exit(ExitCode.USAGE)
        else:
            parser.print_help()
            sys.exit(ExitCode.USAGE)
    except InsertError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(e.exit_code)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(ExitCode.CONFIG)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(ExitCode.UNKNOWN)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(ExitCode.UNKNOWN)


if __name__ == "__main__":
    main()
