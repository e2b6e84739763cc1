#!/usr/bin/env python3
"""
Command-line interface for mailhost.

Finds out the hostname and IPs this machine will run a mail server as,
and checks that DNS is set up consistently for them.

Usage:
    mailhost [OPTIONS] user@domain

Options:
    --hostname HOST  Hostname the mail server will run as
    --json           Print the result as JSON
    --config FILE    TOML configuration file
    --debug          Enable debug logging
    --version        Show version and exit
    --help           Show this message and exit
"""

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from mailhost import __version__
from mailhost.common.config import Settings, load_settings
from mailhost.common.exceptions import MailhostError
from mailhost.identity.discovery import discover
from mailhost.identity.reputation import multirbl_url
from mailhost.identity.result import IdentityResult, Stage

STAGE_TITLES = {
    Stage.CLASSIFIER: "Listing IPs of network interfaces",
    Stage.HOSTNAME: "Determining hostname",
    Stage.CONSISTENCY: "Looking up IPs and reverse names for hostname",
    Stage.REPUTATION: "Checking whether public IPs are listed in popular DNS block lists",
}


def setup_logging(settings: Settings, debug: bool = False) -> None:
    """
    Configure logging for the command-line tool.

    Args:
        settings: Settings holding the log level and format.
        debug: Enable debug logging, overriding the configured level.
    """
    log_level = logging.DEBUG if debug else getattr(logging, settings.logging.level)

    logging.basicConfig(
        level=log_level,
        format=settings.logging.format,
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="mailhost - discover this mail host's identity and check its DNS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Many systems do not have a fully qualified hostname configured, only the
first label, e.g. "mail" for "mail.example.org". In that case the hostname
is found by reverse DNS lookups of the public IPs, with the label plus the
domain of the email address as fallback. Use --hostname to specify it.

Examples:
    Discover the identity for a first account:
        mailhost admin@example.org

    Use an explicit hostname:
        mailhost --hostname mail.example.org admin@example.org

Environment Variables:
    MAILHOST_DEBUG          Enable debug mode (true/false)
    MAILHOST_CONFIG_FILE    TOML configuration file
    DNS_NAMESERVERS         Comma-separated resolver addresses
    DNS_TIMEOUT             Total time for DNS lookups in seconds
    DNS_PROBE_TIMEOUT       Time for a single DNS lookup in seconds
    DNS_BLOCKLIST_ZONES     Comma-separated DNS block list zones
        """,
    )

    parser.add_argument(
        "address",
        help="Email address of the first account, e.g. user@example.org",
    )

    parser.add_argument(
        "--hostname",
        default="",
        help="Hostname the mail server will run on, by default the hostname of "
        "this machine; if given, the IPs of the hostname are used as public IPs",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="TOML configuration file",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Enable debug logging",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"mailhost {__version__}",
    )

    return parser.parse_args(argv)


def format_report(result: IdentityResult) -> str:
    """Render the result for the operator, warnings in stage order."""
    lines = []
    for stage in Stage:
        warnings = result.warnings_for(stage)
        if stage == Stage.REPUTATION and not result.public_ips:
            continue
        if not warnings:
            lines.append(f"{STAGE_TITLES[stage]}... OK")
            continue
        lines.append(f"{STAGE_TITLES[stage]}...")
        for warning in warnings:
            lines.append(f"WARNING: {warning.message}")
        lines.append("")

    if result.reputation:
        lines.append(
            "Other mail servers are likely to reject email from IPs that are in a "
            "block list. Your IP may be in block lists only temporarily. To see if "
            "your IPs are listed in more DNS block lists, visit:"
        )
        lines.append("")
        for ip in result.public_ips:
            lines.append(f"- {multirbl_url(ip)}")
        lines.append("")

    if result.notes:
        lines.append("")
        for note in result.notes:
            lines.append(f"NOTE: {note}")

    lines.append("")
    lines.append(f"Hostname:         {result.hostname}")
    lines.append(f"Mail domain:      {result.mail_domain}")
    lines.append(f"Account:          {result.account}")
    lines.append(f"Public IPs:       {', '.join(result.public_ips) or '(none)'}")
    lines.append(f"Private IPs:      {', '.join(result.private_ips) or '(none)'}")
    lines.append(f"Public listener:  {', '.join(result.public_listener_ips)}")
    lines.append(f"Private listener: {', '.join(result.private_listener_ips)}")
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for mailhost.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
    except MailhostError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    debug = bool(args.debug) or settings.debug

    setup_logging(settings, debug)
    logger = logging.getLogger(__name__)

    logger.info(f"Starting mailhost v{__version__}")

    try:
        result = discover(
            args.address,
            settings,
            explicit_hostname=args.hostname or None,
        )
    except MailhostError as e:
        logger.debug("Discovery failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_report(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
