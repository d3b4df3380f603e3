"""
`ci` command-line interface.

Commands
--------
ci load AGENT                    -- launch a session with AGENT's memory
ci load AGENT --print            -- write the context bundle to stdout
ci load AGENT -c "focus on X"    -- add extra context to the bundle
ci load AGENT -f notes.md        -- use another memory file
ci load AGENT -y                 -- launch unattended (auto-accept)
ci activate AGENT                -- like load, using the agent_activate setting
ci info AGENT [--json]           -- status, memory and auto-accept for AGENT
ci agents [--sort]               -- list agents in the knowledge base
ci where                         -- show which knowledge base is used, and why
ci health [--json]               -- knowledge base / launcher health report
ci config show [--agent NAME]    -- show project settings and auto-accept policy
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml

from . import __version__
from .auto_accept import resolve_auto_accept
from .cli_display import setup_logger
from .config import Config
from .errors import CIError, PathNotFound
from .kb.health import check, format_health, to_json
from .kb.info import describe_agent, format_info
from .kb.info import to_json as info_to_json
from .kb.parser import parse_knowledge_base
from .kb.paths import format_resolution_failure, resolve_knowledge_base
from .project_config import find_nearest_config
from .session.launcher import load_agent

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cmd_load(args: argparse.Namespace) -> int:
    """Launch (or print) a session for one agent."""
    return load_agent(
        args.agent,
        ci_path=args.ci_path,
        config=args.cfg,
        force=args.auto_accept,
        extra=args.context,
        memory_file=args.file,
        print_only=args.print_only,
        command=args.cmd,
    )


def _cmd_info(args: argparse.Namespace) -> int:
    """Show one agent's status, memory and auto-accept decisions."""
    info = describe_agent(args.agent, args.ci_path, config=args.cfg)
    print(info_to_json(info) if args.json else format_info(info))
    return 0


def _cmd_agents(args: argparse.Namespace) -> int:
    """List the agents defined in the knowledge base."""
    location = resolve_knowledge_base(
        args.ci_path, extra_search_paths=args.cfg.SEARCH_PATHS)
    result = parse_knowledge_base(location)

    profiles = list(result.registry.values())
    if args.sort:
        profiles.sort(key=lambda p: p.name.casefold())

    print(f"Agents in {location.path} ({location.source}): {len(profiles)}")
    width = max((len(p.name) for p in profiles), default=0)
    for profile in profiles:
        print(f"  {profile.name:<{width}}  {profile.description}".rstrip())

    for diag in result.diagnostics:
        print(f"warning: {diag}", file=sys.stderr)
    return 0


def _cmd_where(args: argparse.Namespace) -> int:
    """Show the resolved knowledge base root and where it came from."""
    location = resolve_knowledge_base(
        args.ci_path, extra_search_paths=args.cfg.SEARCH_PATHS)
    print(f"Path   : {location.path}")
    print(f"Source : {location.source}")
    print(f"Valid  : {'yes' if location.valid else 'no (AGENTS.md missing)'}")
    return 0


def _cmd_health(args: argparse.Namespace) -> int:
    """Show knowledge base and launcher health report."""
    health = check(args.ci_path, config=args.cfg)
    if args.json:
        print(to_json(health))
    else:
        print(format_health(health))
    return 0 if health.resolved and not health.error else EXIT_ERROR


def _cmd_config_show(args: argparse.Namespace) -> int:
    """Show the nearest project settings."""
    project = find_nearest_config(Path.cwd())
    data = project.to_dict() if project else None

    if args.agent:
        policy = resolve_auto_accept(args.agent, project_config=project,
                                     command=args.command)
        policy_data = {"agent": args.agent, "command": args.command,
                       "decision": policy.decision, "source": policy.source}
    else:
        policy = policy_data = None

    if args.json:
        print(json.dumps({"project": data, "auto_accept_policy": policy_data},
                         indent=2))
        return 0

    if data is None:
        print("No project settings found (.ci-config.json) from "
              f"{Path.cwd()} upward.")
    else:
        print(f"# {data['path']}")
        print(yaml.safe_dump(data, sort_keys=False).rstrip())
    if policy_data is not None:
        print(f"\nAuto-accept for {args.agent} ({args.command}): {policy}")
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _add_ci_path(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--ci-path", dest="ci_path", default=None, metavar="PATH",
        help="Knowledge base root (overrides $CI_PATH and project settings)",
    )


def _add_session_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("agent", help="Agent name (case-insensitive)")
    p.add_argument("-c", "--context", default=None,
                   help="Extra instructions appended to the bundle")
    p.add_argument("-f", "--file", default=None, metavar="PATH",
                   help="Use this memory file instead of the agent's own")
    p.add_argument("-y", "--auto-accept", dest="auto_accept",
                   action="store_true",
                   help="Launch unattended, overriding project settings")
    p.add_argument("--print", dest="print_only", action="store_true",
                   help="Write the bundle to stdout instead of launching")
    _add_ci_path(p)


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the `ci` argument parser."""
    parser = argparse.ArgumentParser(
        prog="ci",
        description="Collaborative Intelligence: load knowledge base agents "
                    "into assistant sessions",
    )
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, metavar="PATH",
                        help="Path to a .ci.yaml tool config file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log to stderr as well as the log file")
    subparsers = parser.add_subparsers(dest="cmd", metavar="COMMAND")
    subparsers.required = True

    # --- load / activate ---
    for name, help_text in (
        ("load", "Start an assistant session with an agent's memory"),
        ("activate", "Like load, but auto-accept follows agent_activate"),
    ):
        load_p = subparsers.add_parser(name, help=help_text)
        _add_session_options(load_p)
        load_p.set_defaults(func=_cmd_load)

    # --- info ---
    info_p = subparsers.add_parser(
        "info", help="Show an agent's status, memory and auto-accept policy")
    info_p.add_argument("agent", help="Agent name (case-insensitive)")
    info_p.add_argument("--json", action="store_true",
                        help="Machine-readable JSON output")
    _add_ci_path(info_p)
    info_p.set_defaults(func=_cmd_info)

    # --- agents ---
    agents_p = subparsers.add_parser("agents", help="List available agents")
    agents_p.add_argument("--sort", action="store_true",
                          help="Sort alphabetically instead of file order")
    _add_ci_path(agents_p)
    agents_p.set_defaults(func=_cmd_agents)

    # --- where ---
    where_p = subparsers.add_parser(
        "where", help="Show the resolved knowledge base location")
    _add_ci_path(where_p)
    where_p.set_defaults(func=_cmd_where)

    # --- health ---
    health_p = subparsers.add_parser("health", help="Show health report")
    health_p.add_argument("--json", action="store_true",
                          help="Machine-readable JSON output")
    _add_ci_path(health_p)
    health_p.set_defaults(func=_cmd_health)

    # --- config ---
    config_p = subparsers.add_parser("config", help="Project settings")
    config_sub = config_p.add_subparsers(dest="config_cmd", metavar="ACTION")
    config_sub.required = True
    show_p = config_sub.add_parser("show", help="Show the nearest project settings")
    show_p.add_argument("--json", action="store_true",
                        help="Machine-readable JSON output")
    show_p.add_argument("--agent", default=None,
                        help="Also show the auto-accept decision for this agent")
    show_p.add_argument("--command", default="load", choices=["load", "activate"],
                        help="Command category for the decision (default: load)")
    show_p.set_defaults(func=_cmd_config_show)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for `ci`.

    Returns the process exit status: the child's status for ``load``,
    1 for any tool error, 130 when interrupted.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    args.cfg = Config.load(args.config)
    setup_logger(args.cfg.LOG_DIR, verbose=args.verbose)
    logger.debug("Command: %s (config file: %s)", args.cmd, args.cfg.path)

    try:
        return args.func(args)
    except PathNotFound as exc:
        logger.error("%s", exc)
        print(format_resolution_failure(exc), file=sys.stderr)
        return EXIT_ERROR
    except CIError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted")
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
