#!/usr/bin/env python3
"""
Main orchestration script for the occupancy dashboard.

This script:
1. Loads the gym directory (hosted if configured, built-in otherwise)
2. Loads the local check-in collection (dropping entries older than 24h)
3. Merges hosted community check-ins when Supabase is configured
4. Optionally submits a check-in at the given coordinates
5. Refreshes the live reading, trend and 12-hour predictions
6. Computes personal and community analytics
7. Computes premium analytics and the partnership export when entitled
"""

import argparse
import asyncio
import logging
import sys

from gympulse.analytics import analyze_community, analyze_personal, export_partnership_data, write_export_json
from gympulse.checkins import CheckInStore, StaticGeolocation, submit_check_in
from gympulse.config import Config
from gympulse.data_extraction import extract_all_data
from gympulse.database import get_supabase_client, insert_check_ins
from gympulse.directory import LocationDirectory
from gympulse.forecasting import analyze_advanced, check_in_trend, generate_prediction_data, get_best_visit_window
from gympulse.models import Coordinates
from gympulse.occupancy import confidence_label, is_stale
from gympulse.refresh import DashboardRefresher
from gympulse.signals import RandomSignalSource
from gympulse.storage import JsonFileStorage

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Estimate live gym occupancy from check-ins.")
    parser.add_argument("--gym", default="mtl-anytime-1", help="Gym id to display")
    parser.add_argument("--check-in", nargs=2, type=float, metavar=("LAT", "LNG"),
                        help="Submit a check-in from this position")
    parser.add_argument("--storage", default=Config.STORAGE_PATH, help="Local storage file")
    parser.add_argument("--premium", action="store_true", default=Config.PREMIUM,
                        help="Show premium analytics and the partnership export")
    parser.add_argument("--export", metavar="PATH", help="Write the partnership export JSON here")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the synthetic signal")
    parser.add_argument("--no-supabase", action="store_true", help="Ignore hosted data even if configured")
    return parser.parse_args(argv)


def main(argv=None):
    """Main execution function."""
    args = parse_args(argv)
    try:
        logger.info("=" * 60)
        logger.info("Starting GymPulse Dashboard")
        logger.info("=" * 60)

        use_supabase = Config.is_supabase_configured() and not args.no_supabase
        client = get_supabase_client() if use_supabase else None

        # Step 1: Directory
        logger.info("\n[Step 1] Loading gym directory...")
        hosted = extract_all_data(client) if client is not None else None
        directory = hosted["directory"] if hosted and len(hosted["directory"]) else LocationDirectory.builtin()
        logger.info(f"  Gyms available: {len(directory)}")

        # Step 2: Local check-ins
        logger.info("\n[Step 2] Loading local check-ins...")
        store = CheckInStore(JsonFileStorage(args.storage))
        logger.info(f"  Client user id: {store.user_id}")
        logger.info(f"  Local check-ins: {len(store.check_ins)}")

        # Step 3: Community check-ins
        community_check_ins = list(store.check_ins)
        hosted_check_ins = []
        if hosted is not None:
            logger.info("\n[Step 3] Merging hosted community check-ins...")
            local = set(store.check_ins)
            hosted_check_ins = [c for c in hosted["check_ins"] if c not in local]
            community_check_ins += hosted_check_ins
            logger.info(f"  Community check-ins: {len(community_check_ins)}")

        # Step 4: Check-in
        if args.check_in:
            logger.info("\n[Step 4] Submitting check-in...")
            lat, lng = args.check_in
            result = submit_check_in(args.gym, store, directory, StaticGeolocation(Coordinates(lat=lat, lng=lng)))
            logger.info(f"  {result.message}")
            if result.accepted:
                community_check_ins.append(result.check_in)
                if client is not None:
                    insert_check_ins(client, [result.check_in])

        # Step 5: Live reading
        logger.info("\n[Step 5] Refreshing live occupancy...")
        refresher = DashboardRefresher(
            args.gym,
            store,
            directory,
            RandomSignalSource(args.seed),
            check_in_source=lambda: store.check_ins + tuple(hosted_check_ins),
        )
        asyncio.run(refresher.run(max_cycles=1))
        state = refresher.state
        if state.error:
            logger.warning(f"  {state.error} Please retry in a moment.")
        elif state.live is not None:
            live = state.live
            freshness = "Data delayed" if is_stale(live.last_updated_at) else "Live data"
            logger.info(f"  {live.gym_name}: {live.percentage}% ({live.level}) - {freshness}")
            logger.info(f"  Estimated headcount: {live.estimated_headcount} members")
            logger.info(f"  {confidence_label(live.confidence)} ({live.confidence}%)")
            logger.info(f"  Check-ins in last 15 min: {live.check_in_count}")
            logger.info(f"  {state.best_visit_text}")

        history = check_in_trend(args.gym, community_check_ins, directory.get_location_by_id(args.gym))
        if history:
            outlook = generate_prediction_data(RandomSignalSource(args.seed), history)
            logger.info(f"  Check-in based outlook: {get_best_visit_window(outlook)}")

        # Step 6: Analytics
        logger.info("\n[Step 6] Computing analytics...")
        personal = analyze_personal(store.user_check_ins(), directory.get_location_by_id)
        community = analyze_community(community_check_ins, directory.get_location_by_id)
        if personal.most_visited is not None:
            location, count = personal.most_visited
            name = location.name if location is not None else "Unknown Gym"
            logger.info(f"  Most visited: {name} ({count} check-ins)")
        logger.info(f"  Check-ins this week: {personal.this_week_check_ins}")
        logger.info(f"  Community check-ins (24h): {community.total_community_check_ins}")
        for peak in community.peak_hours:
            logger.info(f"  Peak hour {peak.hour:02d}:00 - {peak.count} check-ins")

        # Step 7: Premium
        if args.premium:
            logger.info("\n[Step 7] Computing premium analytics...")
            advanced = analyze_advanced(personal, store.user_check_ins())
            logger.info(f"  Consistency score: {advanced.consistency_score} (stretch goal {advanced.stretch_goal})")
            if advanced.best_day_of_week is not None:
                logger.info(f"  Best day: {DAY_NAMES[advanced.best_day_of_week]}")
            if args.export:
                document = export_partnership_data(community, community_check_ins, directory.get_location_by_id)
                write_export_json(document, args.export)
        elif args.export:
            logger.warning("Partnership export requires premium; skipping")

        logger.info("\n" + "=" * 60)
        logger.info("GymPulse Dashboard Completed Successfully!")
        logger.info("=" * 60)

    except Exception as e:
        logger.error(f"\nDashboard failed with error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
