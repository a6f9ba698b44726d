"""
Command-line interface for AgroAlert.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from rich.console import Console
from rich.table import Table

from .core.config import AppConfig
from .core.application import AgroAlertApplication
from .api.alert_client import AlertFeedClient, load_alert_collection
from .core.models import AlertCollection

console = Console()
logger = logging.getLogger(__name__)

TEST_NOTIFICATION_DATA = {
    "nivel": "amarillo",
    "fenomeno": "test",
    "areaDesc": "AgroAlert test notification",
    "descripcion": "This is a test notification.",
}


def setup_logging():
    """Setup basic logging."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def print_cache_status(app: AgroAlertApplication) -> None:
    status = app.alert_cache.get_cache_status()
    if not status.exists:
        console.print("[yellow]Alert cache is empty[/yellow]")
        return
    state = "[green]fresh[/green]" if status.is_valid else "[yellow]stale[/yellow]"
    console.print(
        f"Alert cache: {state}, age {status.age_seconds / 60:.1f} min, "
        f"last updated {status.last_updated.isoformat()}"
    )


async def init_db_with_config(config_path=None):
    """Create the parcel and user tables."""
    config = AppConfig.from_yaml(config_path)
    app = AgroAlertApplication(config)
    try:
        await app.initialize(with_executor=False)
        console.print("[green]✓ Database initialized[/green]")
    finally:
        await app.shutdown()


async def seed_with_config(config_path=None, seed_file=None):
    """
    Load users and parcels from a JSON file.

    Format: ``{"users": [{"id", "email", "phoneNumber", "parcels": [...]}],
    "parcels": [{"id", "geometry"}]}``
    """
    data = json.loads(Path(seed_file).read_text(encoding="utf-8"))
    config = AppConfig.from_yaml(config_path)
    app = AgroAlertApplication(config)
    try:
        await app.initialize(with_executor=False)
        db = app.database_manager
        for parcel in data.get("parcels", []):
            await db.add_parcel(str(parcel["id"]), parcel["geometry"])
        for user in data.get("users", []):
            await db.add_user(str(user["id"]), user.get("email"), user.get("phoneNumber"))
            for parcel_id in user.get("parcels", []):
                await db.link_parcel(str(user["id"]), str(parcel_id))
        console.print(
            f"[green]✓ Seeded {len(data.get('users', []))} users and "
            f"{len(data.get('parcels', []))} parcels[/green]"
        )
    finally:
        await app.shutdown()


async def fetch_alerts_with_config(config_path=None):
    """Fetch alerts through the cache and show them."""
    config = AppConfig.from_yaml(config_path)
    app = AgroAlertApplication(config)
    try:
        await app.initialize(with_executor=False)
        collection = await app.alert_cache.get_alerts()

        table = Table(title=f"{len(collection.features)} weather alerts")
        table.add_column("Level")
        table.add_column("Phenomenon")
        table.add_column("Area")
        table.add_column("Geometry")
        for alert in collection.features:
            props = alert.properties
            table.add_row(props.level or "-", props.phenomenon or "-", props.area_desc or "-", alert.geometry.type)
        console.print(table)
        print_cache_status(app)
    finally:
        await app.shutdown()


async def process_alerts_with_config(config_path=None, alerts_file=None):
    """Run the correlation pipeline on a GeoJSON file or the live feed."""
    config = AppConfig.from_yaml(config_path)
    app = AgroAlertApplication(config)
    try:
        await app.initialize()
        if alerts_file:
            data = json.loads(Path(alerts_file).read_text(encoding="utf-8"))
            alerts = load_alert_collection(data).features
            sent = await app.pipeline.process_weather_alerts(alerts)
        else:
            sent = await app.pipeline.process_current_alerts()
            print_cache_status(app)
        console.print(f"[bold green]{sent} notifications sent[/bold green]")
    finally:
        await app.shutdown()


async def refresh_cache(app: AgroAlertApplication) -> AlertCollection:
    """Force a cache refresh, showing the cache status before and after."""
    print_cache_status(app)
    collection = await app.alert_cache.refresh()
    console.print(f"[green]✓ Alert cache refreshed with {len(collection.features)} alerts[/green]")
    print_cache_status(app)
    return collection


async def refresh_with_config(config_path=None):
    """Refresh the alert cache from the upstream feed."""
    config = AppConfig.from_yaml(config_path)
    app = AgroAlertApplication(config)
    try:
        await app.initialize(with_executor=False)
        await refresh_cache(app)
    finally:
        await app.shutdown()


async def send_test_notification(app: AgroAlertApplication, user_id: str, data: Dict[str, Any]) -> bool:
    """Dispatch one notification to a single user."""
    accepted = await app.pipeline.dispatcher.dispatch_to(user_id, data)
    if accepted:
        console.print(f"[green]✓ Notification accepted for user {user_id}[/green]")
    else:
        console.print(
            f"[red]✗ Notification not sent to user {user_id}; "
            f"check that the user exists and has an email[/red]"
        )
    return accepted


async def notify_user_with_config(config_path=None, user_id=None, data_file=None):
    """Send a test notification to one user."""
    if data_file:
        data = json.loads(Path(data_file).read_text(encoding="utf-8"))
    else:
        data = dict(TEST_NOTIFICATION_DATA)

    config = AppConfig.from_yaml(config_path)
    app = AgroAlertApplication(config)
    try:
        await app.initialize()
        if not await send_test_notification(app, user_id, data):
            sys.exit(1)
    finally:
        await app.shutdown()


async def test_feed_with_config(config_path=None):
    """Test the alert feed connection."""
    console.print("[bold blue]Testing alert feed connection[/bold blue]")
    config = AppConfig.from_yaml(config_path)

    async with AlertFeedClient(config.alert_feed) as client:
        if not await client.test_connection():
            console.print("[red]✗ Alert feed connection failed[/red]")
            sys.exit(1)
        console.print("[green]✓ Alert feed connection successful[/green]")
        collection = await client.fetch_alerts()
        console.print(f"    [green]✓ Found {len(collection.features)} alerts[/green]")


def create_parser():
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="AgroAlert weather-alert notifications for land parcels",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db                             Create the database tables
  %(prog)s seed parcels.json                   Load users and parcels
  %(prog)s process --alerts alerts.geojson     Notify owners hit by the alerts in a file
  %(prog)s process                             Notify owners hit by the live feed
  %(prog)s refresh                             Force a refresh of the alert cache
  %(prog)s test-notification u1 --data d.json  Send a test notification to one user
        """
    )
    parser.add_argument('--config', '-c',
                        help='Configuration file path (default: config/default.yaml)',
                        default='config/default.yaml')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('init-db', help='Create the database tables')

    seed_parser = subparsers.add_parser('seed', help='Load users and parcels from JSON')
    seed_parser.add_argument('seed_file', help='JSON file with users and parcels')

    subparsers.add_parser('fetch', help='Fetch alerts through the cache')

    process_parser = subparsers.add_parser('process', help='Run the alert correlation pipeline')
    process_parser.add_argument('--alerts', '-a', help='GeoJSON FeatureCollection of alerts')

    subparsers.add_parser('refresh', help='Force a refresh of the alert cache')

    notify_parser = subparsers.add_parser('test-notification', help='Send a test notification to one user')
    notify_parser.add_argument('user_id', help='User identifier')
    notify_parser.add_argument('--data', '-d', help='JSON file with the notification data')

    subparsers.add_parser('test-feed', help='Test the alert feed connection')

    return parser


def main():
    """Main entry point."""
    setup_logging()

    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == 'init-db':
            asyncio.run(init_db_with_config(args.config))
        elif args.command == 'seed':
            asyncio.run(seed_with_config(args.config, args.seed_file))
        elif args.command == 'fetch':
            asyncio.run(fetch_alerts_with_config(args.config))
        elif args.command == 'process':
            asyncio.run(process_alerts_with_config(args.config, args.alerts))
        elif args.command == 'refresh':
            asyncio.run(refresh_with_config(args.config))
        elif args.command == 'test-notification':
            asyncio.run(notify_user_with_config(args.config, args.user_id, args.data))
        elif args.command == 'test-feed':
            asyncio.run(test_feed_with_config(args.config))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        logger.exception("Unhandled exception")
        sys.exit(1)


if __name__ == "__main__":
    main()
