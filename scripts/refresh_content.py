#!/usr/bin/env python3
"""
Trigger a cache refresh on a running Notion Nav API.

Run this after editing the Notion database so the site picks up the
changes without a restart.

Usage:
    python scripts/refresh_content.py [--api-url URL] [--stats]

Options:
    --api-url   Base URL of the service (default: $NAV_API_URL or http://localhost:8000)
    --stats     Only print cache statistics, do not refresh
"""

import argparse
import os
import sys

import httpx
from dotenv import load_dotenv
load_dotenv()

CONTENT_PATH = "/api/getDatabaseContent"


def print_stats(stats: dict):
    """Print cache statistics."""
    print()
    print("CACHE STATUS")
    print("-" * 40)
    print(f"  Total Entries:    {stats['total_entries']:>6}")
    print(f"  Tags Indexed:     {stats['tag_count']:>6}")
    print(f"  Generation:       {stats['generation']:>6}")
    print(f"  Last Refresh:     {stats.get('last_refreshed_at') or 'never'}")
    if stats["keys"]:
        print(f"  Keys:             {', '.join(stats['keys'])}")
    print()


def refresh(client: httpx.Client) -> int:
    """POST to the content endpoint and report what came back."""
    response = client.post(CONTENT_PATH)
    if response.status_code != 200:
        try:
            error = response.json().get("error", response.text)
        except ValueError:
            error = response.text
        print(f"ERROR: refresh failed ({response.status_code}): {error}")
        return 1

    data = response.json()
    tags = data.get("uniqueTags") or []
    print(f"Refreshed: {len(data.get('results') or [])} pages, {len(tags)} tags")
    if tags:
        print(f"Tags: {', '.join(tags)}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Refresh the Notion Nav API content cache"
    )
    parser.add_argument(
        "--api-url",
        default=os.environ.get("NAV_API_URL", "http://localhost:8000"),
        help="Base URL of the service"
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Only print cache statistics"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Request timeout in seconds (default: 60)"
    )

    args = parser.parse_args()

    try:
        with httpx.Client(base_url=args.api_url.rstrip("/"), timeout=args.timeout) as client:
            if args.stats:
                response = client.get("/api/v1/cache/stats")
                response.raise_for_status()
                print_stats(response.json())
                return 0
            return refresh(client)
    except httpx.HTTPError as e:
        print(f"ERROR: could not reach {args.api_url}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
