import argparse
import asyncio
import logging
from datetime import UTC, datetime

from pydantic import BaseModel

from transit_eta.app import mcp
from transit_eta.tools import arrivals_tools  # noqa: F401  registers tools


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


@mcp.tool()
def health() -> HealthResponse:
    """Check if the Transit ETA MCP server is running and healthy.

    Returns the server status, version, and current timestamp.
    """
    from transit_eta import __version__

    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )


async def run_arrivals(
    stop_id: str,
    lat: float | None,
    lon: float | None,
    stop_code: str | None,
    city: str | None,
    max_results: int,
    line_ids: list[str] | None = None,
) -> None:
    """Look up arrivals once and print them as JSON."""
    from transit_eta.services.stop_arrivals_service import get_arrivals

    response = await get_arrivals(
        stop_id=stop_id,
        lat=lat,
        lon=lon,
        stop_code=stop_code,
        city=city,
        max_results=arrivals_tools.clamp_max_results(max_results),
        line_ids=line_ids or None,
    )
    print(response.model_dump_json(indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="transit-eta",
        description="Transit ETA MCP Server",
    )
    subparsers = parser.add_subparsers(dest="command")

    # arrivals command
    arrivals_parser = subparsers.add_parser(
        "arrivals",
        help="Print arrivals for a stop and exit",
    )
    arrivals_parser.add_argument("stop_id", help="NaPTAN / ATCO stop id")
    arrivals_parser.add_argument("--lat", type=float, help="Stop latitude")
    arrivals_parser.add_argument("--lon", type=float, help="Stop longitude")
    arrivals_parser.add_argument("--code", dest="stop_code", help="Short public stop code")
    arrivals_parser.add_argument(
        "--city",
        choices=["london", "outside-london"],
        help="Force the provider for a city instead of routing by stop id",
    )
    arrivals_parser.add_argument(
        "-n",
        "--max-results",
        type=int,
        default=10,
        help="Maximum number of arrivals, 1-10 (default: 10)",
    )
    arrivals_parser.add_argument(
        "--line",
        action="append",
        dest="line_ids",
        help="Only show this line (repeatable)",
    )
    arrivals_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if args.command == "arrivals":
        # Configure logging
        log_level = logging.DEBUG if args.verbose else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        asyncio.run(
            run_arrivals(
                args.stop_id,
                args.lat,
                args.lon,
                args.stop_code,
                args.city,
                args.max_results,
                args.line_ids,
            )
        )
    else:
        # Default: run MCP server
        mcp.run()


if __name__ == "__main__":
    main()
