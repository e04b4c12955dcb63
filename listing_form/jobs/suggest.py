"""CLI job to look up location suggestions and optionally build a listing payload."""

import argparse
import json
import logging
from typing import Any, Dict, List, Optional, Union

from listing_form.core.config import ConfigError, get_settings
from listing_form.core.form_state import FormState
from listing_form.vendors.suggestions import SuggestionClient, SuggestionError

logger = logging.getLogger(__name__)


def run_lookup(
    query: str,
    *,
    select: Optional[int] = None,
    title: str = "",
    price: str = "",
    description: str = "",
) -> Union[List[Dict[str, str]], Dict[str, Any]]:
    settings = get_settings()
    client = SuggestionClient(settings.suggestions_url, timeout=settings.suggestions_timeout_seconds)

    logger.info("Looking up suggestions for query=%r", query)
    places = client.fetch(query)
    logger.info("Fetched %d suggestions", len(places))

    if select is None:
        return [place.to_dict() for place in places]

    if not 1 <= select <= len(places):
        raise ValueError(f"--select must be between 1 and {len(places)}, got {select}")
    if not title:
        raise ValueError("--title is required to build a listing")

    place = places[select - 1]
    form = FormState(title=title, price=price, description=description)
    form.selected_place = place
    form.location_text = place.label
    return form.submit()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Look up listing locations")
    parser.add_argument("query", help="Location text, e.g. 'Athens'")
    parser.add_argument("--select", type=int, help="1-based index of the suggestion to use for the listing")
    parser.add_argument("--title", default="", help="Listing title")
    parser.add_argument("--price", default="", help="Listing price")
    parser.add_argument("--description", default="", help="Listing description")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    try:
        result = run_lookup(
            args.query,
            select=args.select,
            title=args.title,
            price=args.price,
            description=args.description,
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except (SuggestionError, ValueError) as exc:
        logger.error("Lookup failed: %s", exc)
        raise SystemExit(1) from exc

    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
