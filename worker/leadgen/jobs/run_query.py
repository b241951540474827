"""CLI job to search places, enrich them and print the results as JSON."""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from leadgen.core.config import EnrichmentMode, get_settings
from leadgen.core.db import PlaceStore
from leadgen.core.search_service import SearchService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Search Google Places with caching and enrichment")
    parser.add_argument("query", help="Free-text business query, e.g. 'dentists in Austin'")
    parser.add_argument("--force-fresh", action="store_true", help="Skip the cache and search the provider")
    parser.add_argument("--max-results", dest="max_results", type=int, help="Maximum number of places to return")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in EnrichmentMode],
        default=settings.enrichment_mode.value,
        help="Enrichment mode for freshly fetched places",
    )
    return parser


def run_query_job(
    *,
    query: str,
    force_fresh: bool,
    max_results: Optional[int],
    mode: EnrichmentMode,
) -> dict:
    settings = get_settings()
    with PlaceStore.from_settings(settings) as store:
        service = SearchService(store, settings, mode=mode)
        result = asyncio.run(service.search(query, force_fresh=force_fresh, max_results=max_results))
    if result.warning:
        logger.warning(result.warning)
    logger.info("Completed run: %d places", len(result.places))
    return result.to_dict()


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    payload = run_query_job(
        query=args.query,
        force_fresh=args.force_fresh,
        max_results=args.max_results,
        mode=EnrichmentMode(args.mode),
    )
    json.dump(payload, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
