"""Application entry point for the GitHub PR delivery metrics generator."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timedelta, timezone

from .cli import parse_args
from .config import load_config
from .errors import (
    AuthenticationError,
    ConfigurationError,
    DataValidationError,
    RemoteFetchError,
)
from .github_client import GitHubClient
from .kpi import analyze_pull_requests
from .models import Repository
from .selector import select_pull_requests
from .stats import generate_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_AUTHENTICATION_ERROR = 3
EXIT_REMOTE_FETCH_ERROR = 4
EXIT_DATA_VALIDATION_ERROR = 5


def setup_logging(level: str = "WARNING") -> None:
    """Configure root logging for a CLI run."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def orchestrate_metrics_generation() -> int:
    """Run the end-to-end metrics flow and return a process exit code.

    Progress lines are printed as stages start; the report is printed only
    when every stage succeeds.
    """
    try:
        args = parse_args()
        setup_logging(args.log_level)

        config = load_config(
            owner=args.owner,
            repo_name=args.repo,
            window_days=args.days,
            no_ticket_marker=args.no_ticket_marker,
            max_workers=args.workers,
        )
        repository = Repository(owner=config.owner, name=config.repo_name)
        client = GitHubClient(config=config)

        reference_time = datetime.now(timezone.utc)
        window = timedelta(days=config.window_days)

        print(
            f"Getting pull requests merged in the last {config.window_days} days "
            f"for '{repository.full_name}'..."
        )
        prs = select_pull_requests(
            client=client,
            repository=repository,
            reference_time=reference_time,
            window=window,
        )

        print(f"Analyzing {len(prs)} pull requests...")
        metrics = analyze_pull_requests(
            client=client,
            repository=repository,
            prs=prs,
            no_ticket_marker=config.no_ticket_marker,
            max_workers=config.max_workers,
        )

        print(generate_report(metrics))
        return EXIT_OK
    except ConfigurationError as exc:
        logger.error("Configuration error", extra={"error": str(exc)})
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    except AuthenticationError as exc:
        logger.error("Authentication error", extra={"error": str(exc)})
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION_ERROR
    except RemoteFetchError as exc:
        logger.error("GitHub API error", extra={"error": str(exc)})
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_REMOTE_FETCH_ERROR
    except DataValidationError as exc:
        logger.error("Data validation error", extra={"error": str(exc)})
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_DATA_VALIDATION_ERROR
    except Exception:
        logger.exception("Unexpected error while generating metrics")
        print("ERROR: Unexpected error while generating metrics.", file=sys.stderr)
        return EXIT_UNEXPECTED_ERROR


def main() -> None:
    """Console script entry point."""
    sys.exit(orchestrate_metrics_generation())


if __name__ == "__main__":
    main()
