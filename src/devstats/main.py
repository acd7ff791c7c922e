"""Entry point wiring CLI, configuration, GitHub client and statistics."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from .aggregator import StatsAggregator
from .cli import parse_args
from .config import Config, load_config
from .errors import ApiError, AuthenticationError, ConfigurationError, DataValidationError
from .github_client import GitHubClient
from .stats import generate_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4


def orchestrate_stats_generation() -> int:
    """Run the full statistics flow and map failures to exit codes."""
    aggregator: Optional[StatsAggregator] = None
    config: Optional[Config] = None
    try:
        args = parse_args()
        logging.getLogger().setLevel(logging.DEBUG if args.verbose else logging.INFO)

        config = load_config(
            repository=args.repo,
            authors=args.authors,
            from_date=args.from_date,
            workers=args.workers,
        )
        client = GitHubClient(token=config.token, pool_size=max(config.workers, 10))

        authors = ", ".join(config.search.authors)
        print(f"Groking PR stats for [{authors}] from [{config.search.from_date}]...")
        aggregator = StatsAggregator(client=client, options=config.search, workers=config.workers)
        stats = aggregator.run()

        print("finished")
        print(
            generate_report(
                stats,
                repository=config.search.repository,
                from_date=config.search.from_date,
            )
        )
        return EXIT_OK
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except AuthenticationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION
    except (ApiError, DataValidationError) as exc:
        _print_partial(aggregator, config)
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_API
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected failure while generating PR statistics")
        return EXIT_UNEXPECTED


def _print_partial(aggregator: Optional[StatsAggregator], config: Optional[Config]) -> None:
    """Print the authors that finished before a fatal error, if any."""
    if aggregator is None or config is None or not aggregator.results:
        return
    print("Partial results before the failure:")
    print(
        generate_report(
            aggregator.results,
            repository=config.search.repository,
            from_date=config.search.from_date,
        )
    )


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return orchestrate_stats_generation()


if __name__ == "__main__":
    raise SystemExit(main())
