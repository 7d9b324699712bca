"""
chatkarma.__main__ -- CLI entry point.

Usage:
    chatkarma init [--data-dir DIR]
    chatkarma upgrade [--data-dir DIR | --config PATH]
    chatkarma say MESSAGE [--user ID] [--addressed] [--admin]
    chatkarma top [N] [--worst]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="chatkarma",
        description="chatkarma -- karma tracking for chat bots",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # -- init --------------------------------------------------------------
    init_p = sub.add_parser("init", help="Initialize a new data directory")
    init_p.add_argument(
        "--data-dir",
        default="./karma_data",
        help="Data directory to create (default: ./karma_data)",
    )

    # -- upgrade -----------------------------------------------------------
    upgrade_p = sub.add_parser("upgrade", help="Run pending data migrations")
    _add_location_args(upgrade_p)

    # -- say ---------------------------------------------------------------
    say_p = sub.add_parser("say", help="Dispatch one chat message and print replies")
    say_p.add_argument("message", help="Message text, e.g. 'foo++'")
    say_p.add_argument("--user", default=None, help="Sender user id")
    say_p.add_argument(
        "--addressed", action="store_true", help="Message is addressed to the bot"
    )
    say_p.add_argument(
        "--admin", action="store_true", help="Sender may run destructive commands"
    )
    _add_location_args(say_p)

    # -- top ---------------------------------------------------------------
    top_p = sub.add_parser("top", help="Show the leaderboard")
    top_p.add_argument("n", nargs="?", type=int, default=5, help="How many terms")
    top_p.add_argument("--worst", action="store_true", help="Lowest scores first")
    _add_location_args(top_p)

    args = parser.parse_args(argv)

    # -- Logging -----------------------------------------------------------
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    if args.command is None:
        parser.print_help()
        return

    # -- Dispatch ----------------------------------------------------------
    if args.command == "init":
        _cmd_init(args)
    elif args.command == "upgrade":
        _cmd_upgrade(args)
    elif args.command == "say":
        _cmd_say(args)
    elif args.command == "top":
        _cmd_top(args)
    else:
        parser.print_help()


def _add_location_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--data-dir", default="./karma_data", help="Data directory")
    p.add_argument("--config", default=None, help="Path to karma.yaml config")


def _load_config(args: argparse.Namespace):
    from chatkarma.core.config import Config

    if args.config:
        return Config.from_yaml(args.config)
    config_path = Path(args.data_dir) / "karma.yaml"
    if config_path.exists():
        return Config.from_yaml(config_path)
    return Config.from_data_dir(args.data_dir)


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def _cmd_init(args: argparse.Namespace) -> None:
    """Create a fresh data directory with template files."""
    from chatkarma.core.config import Config

    data_dir = Path(args.data_dir).resolve()
    config = Config.from_data_dir(data_dir)
    config.ensure_directories()

    users_path = config.users_path
    if not users_path.exists():
        users_path.write_text(
            "# Display names for chat user ids\n"
            "users:\n"
            "  # example:\n"
            '  #   "U024BE7LH":\n'
            "  #     name: Alice\n",
            encoding="utf-8",
        )

    config_path = data_dir / "karma.yaml"
    if not config_path.exists():
        config_path.write_text(
            "# chatkarma configuration\n"
            "karma:\n"
            f"  data_dir: {data_dir}\n"
            "  bot_name: karmabot\n"
            "  cooldown: 300            # seconds, null disables\n"
            "  link_karma_threshold: null\n"
            "  decay: false\n"
            "  decay_interval: 2592000  # 30 days\n"
            "  karma_admins: []\n",
            encoding="utf-8",
        )

    print(f"Initialized chatkarma at: {data_dir}")
    print(f"  users.yaml: {users_path}")
    print(f"  karma.yaml: {config_path}")


def _cmd_upgrade(args: argparse.Namespace) -> None:
    """Run the data migrations and report which steps did work."""
    from chatkarma.system import KarmaSystem

    with KarmaSystem(config=_load_config(args), upgrade=False) as karma:
        print(json.dumps(karma.upgrade_data(), indent=2))


def _cmd_say(args: argparse.Namespace) -> None:
    """Dispatch one message and print each reply."""
    from chatkarma.system import KarmaSystem

    with KarmaSystem(config=_load_config(args)) as karma:
        replies = karma.handle(
            args.message,
            user_id=args.user,
            addressed=args.addressed,
            privileged=args.admin,
        )
        for reply in replies:
            print(reply)


def _cmd_top(args: argparse.Namespace) -> None:
    """Print the leaderboard."""
    from chatkarma.system import KarmaSystem

    command = f"karma {'worst' if args.worst else 'best'} {args.n}"
    with KarmaSystem(config=_load_config(args)) as karma:
        for reply in karma.handle(command, addressed=True):
            print(reply)


if __name__ == "__main__":
    main()
