"""CLI entrypoints for pdfdocs commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_config
from .errors import PdfDocsError
from .logging import configure_logging, mask_secrets, redact
from .orchestrator import Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdfdocs",
        description="Build PDF manuals for project releases and deploy them to the docs repository.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .pdfdocs.yml (defaults to $PDFDOCS_CONFIG or ./.pdfdocs.yml).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("releases", "Build PDFs for all eligible releases that are not yet published."),
        ("nightly", "Build the PDF for the latest nightly snapshot."),
        ("commit", "Commit staged PDFs and force-push the deployment branch."),
        ("versions", "List the releases eligible for a PDF build."),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        _add_verbose_option(subparser, suppress_default=True)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for pdfdocs commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    secrets: list[str | None] = []
    try:
        config = load_config(args.config)
        secrets = [config.token, config.deploy_key]
        mask_secrets(*secrets)
        orchestrator = Orchestrator(config)
        if args.command == "releases":
            built = orchestrator.run_releases()
            print(f"{len(built)} new PDF(s) staged in {config.staging_dir}")
        elif args.command == "nightly":
            outcome = orchestrator.run_nightly()
            print(f"Nightly PDF for {outcome.version} ({outcome.commit}) staged at {outcome.path}")
        elif args.command == "commit":
            if orchestrator.run_commit():
                print(f"Deployed PDFs to {config.publish.branch}")
            else:
                print("Nothing deployed")
        elif args.command == "versions":
            for tag in orchestrator.collect_versions().tags:
                print(tag)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except PdfDocsError as exc:
        message = redact(str(exc), secrets)
        parser.exit(
            1, f"pdfdocs {args.command} failed: {message}\nRun with --verbose for more details.\n"
        )


if __name__ == "__main__":
    main(sys.argv[1:])
