"""CLI entry point for the talent page builder."""

import argparse
import asyncio
import logging
import sys

from talentpage.brand.extractor import BrandExtractor
from talentpage.brand.scraper import WebsiteScraper
from talentpage.core.cache import TTLCache
from talentpage.core.config import Settings
from talentpage.core.errors import RecordNotFoundError
from talentpage.core.schemas import BrandError
from talentpage.market.research import MarketResearcher
from talentpage.pipeline.orchestrator import build_services, load_provider
from talentpage.render.generator import render, render_standalone


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Talent page builder - brand extraction, market research and landing pages",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML file (default: built-in settings)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- serve ---
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Override server.host")
    serve_parser.add_argument("--port", type=int, default=None, help="Override server.port")

    # --- scrape ---
    scrape_parser = subparsers.add_parser(
        "scrape", help="Scrape a company website and print its brand profile as JSON",
    )
    scrape_parser.add_argument("url", help="Company website URL")

    # --- research ---
    research_parser = subparsers.add_parser(
        "research", help="Research the job market for a role and print it as JSON",
    )
    research_parser.add_argument("role", help="Role title, e.g. 'Warehouse Supervisor'")
    research_parser.add_argument("location", help="Location, e.g. Sydney")
    research_parser.add_argument("--industry", default="", help="Industry or sector")

    # --- render ---
    render_parser = subparsers.add_parser("render", help="Print a stored record's landing page")
    render_parser.add_argument("record_id", help="Record id (tlp_...)")
    render_parser.add_argument(
        "--standalone",
        action="store_true",
        help="Render the export version (no deploy banner, social meta tags)",
    )

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str | None) -> Settings:
    if path is None:
        return Settings()
    return Settings.from_yaml(path)


def cmd_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    from talentpage.api.app import create_app

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    uvicorn.run(create_app(settings), host=host, port=port)


async def cmd_scrape(settings: Settings, url: str) -> int:
    scraper = WebsiteScraper(settings.scraper, TTLCache(settings.cache.brand_ttl_seconds, name="brand"))
    extractor = BrandExtractor(load_provider(settings.llm), settings.llm.model)
    profile = await extractor.extract(await scraper.scrape(url))
    print(profile.model_dump_json(indent=2))
    return 1 if isinstance(profile, BrandError) else 0


async def cmd_research(settings: Settings, role: str, location: str, industry: str) -> None:
    researcher = MarketResearcher(
        settings.market,
        TTLCache(settings.cache.market_ttl_seconds, name="market"),
        load_provider(settings.llm),
        settings.llm.model,
        user_agent=settings.scraper.user_agent,
    )
    profile = await researcher.research(role, location, industry)
    print(profile.model_dump_json(indent=2))


def cmd_render(settings: Settings, record_id: str, standalone: bool) -> None:
    orchestrator = build_services(settings)
    record = orchestrator.get_record(record_id)
    proxy_path = settings.server.image_proxy_path
    if standalone:
        print(render_standalone(record, proxy_path=proxy_path))
    else:
        print(render(record, proxy_path=proxy_path))


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "serve":
        cmd_serve(settings, args)
    elif args.command == "scrape":
        sys.exit(asyncio.run(cmd_scrape(settings, args.url)))
    elif args.command == "research":
        asyncio.run(cmd_research(settings, args.role, args.location, args.industry))
    elif args.command == "render":
        try:
            cmd_render(settings, args.record_id, args.standalone)
        except RecordNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
