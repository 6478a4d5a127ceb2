"""Replay a dump of Tautulli history records offline.

Normalizes the records of a JSON dump (either a bare list of records or
a full ``get_history`` API response), prints the history statistics and
the playback timeline length, and optionally walks every frame printing
the number of sessions active at each instant.

Usage:
    python scripts/replay_history.py history.json
    python scripts/replay_history.py history.json --tz Europe/Paris --frames
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from sa_common.models.session import GeoPoint, Session
from sa_common.normalizer import SessionNormalizer
from sa_common.utils import format_duration, format_instant

from history.stats import HistoryStatsAggregator
from history.timeline import TimelineBuilder


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments for the history replay."""
    parser = argparse.ArgumentParser(description="Replay a Tautulli history dump")
    parser.add_argument("dump", type=Path, help="Path to the JSON history dump")
    parser.add_argument("--lat", type=float, default=48.856614, help="Server latitude (default: %(default)s)")
    parser.add_argument("--lon", type=float, default=2.352222, help="Server longitude (default: %(default)s)")
    parser.add_argument("--tz", type=str, default="UTC", help="Display time zone (default: %(default)s)")
    parser.add_argument("--top", type=int, default=10, help="Users listed by watch time (default: %(default)s)")
    parser.add_argument(
        "--frames",
        action="store_true",
        default=False,
        help="Print the active-session count of every timeline instant",
    )
    return parser.parse_args()


def extract_records(body: Any) -> list[dict[str, Any]]:
    """Return the history records of a dump in either accepted shape."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        data = body.get("response", {}).get("data", body.get("data"))
        if isinstance(data, dict):
            data = data.get("data")
        if isinstance(data, list):
            return data
    raise ValueError("unrecognised history dump layout")


def normalize(records: list[dict[str, Any]], origin: GeoPoint) -> list[Session]:
    normalizer = SessionNormalizer(historical=True)
    total = len(records)
    sessions = [normalizer.normalize(raw, origin, i, total) for i, raw in enumerate(records)]
    return sorted(sessions, key=lambda s: (s.start_ms or 0, s.key))


def main() -> None:
    """Load the dump and print the replay summary."""
    args = parse_args()
    try:
        records = extract_records(json.loads(args.dump.read_text(encoding="utf-8")))
    except (OSError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    sessions = normalize(records, GeoPoint(lat=args.lat, lon=args.lon))
    stats = HistoryStatsAggregator(args.tz).aggregate(sessions)
    timeline = TimelineBuilder().build(sessions)

    print(f"Sessions:        {stats.total_sessions}")
    print(f"Users:           {stats.unique_users}")
    print(f"Countries:       {stats.unique_countries}")
    print(f"Watch time:      {format_duration(stats.total_watch_ms)}")
    print(f"Timeline points: {len(timeline)}")
    if timeline:
        print(f"From:            {format_instant(timeline[0], args.tz)}")
        print(f"To:              {format_instant(timeline[-1], args.tz)}")

    if stats.by_user:
        print("\nTop users:")
        for name, user in stats.top_users(args.top):
            print(f"  {name:<24} {user.session_count:>4} sessions  {format_duration(user.watch_ms)}")

    if args.frames:
        print("\nFrames:")
        for index, instant in enumerate(timeline):
            active = sum(1 for s in sessions if s.is_active_at(instant))
            print(f"  {index:>5}  {format_instant(instant, args.tz)}  {active} active")


if __name__ == "__main__":
    main()
