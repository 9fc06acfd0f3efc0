# pyFleetAPI Module - Command Line Interface
# -*- coding: utf-8 -*-
"""
 Command Line Interface for the Tesla FleetAPI to read and control a
 Powerwall energy site.

 Usage:
    python3 -m pyfleetapi [--debug] [--site-id SITE_ID] [--region REGION] command [args...]

 Credentials are read from the environment (or a .env file):
    CLIENT_ID, ACCESS_TOKEN, REFRESH_TOKEN and optionally SITE_ID

 Exit codes:
    0 ok, 1 API error, 2 missing credentials or site, 3 usage error,
    4 unsupported operation, 5 token expired, 6 rate limited
"""

# Import Libraries
import argparse
import json
import sys
from typing import Optional

import requests
from dotenv import load_dotenv
from pydantic import BaseModel

from pyfleetapi import __version__, set_debug
from pyfleetapi.config import FLEET_API_URLS, FleetSettings
from pyfleetapi.exceptions import PyFleetAPIError, RateLimitError, TokenExpiredError, UnsupportedError
from pyfleetapi.powerwall import Powerwall

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_SETUP = 2
EXIT_USAGE = 3
EXIT_UNSUPPORTED = 4
EXIT_TOKEN_EXPIRED = 5
EXIT_RATE_LIMITED = 6

COMMANDS = {
    # Core API
    "products": "List energy products/sites",
    "status": "Real-time system status",
    "site_info": "Site configuration",
    "aggregates": "Power flow data",
    "soe": "Battery state of energy",
    "grid_status": "Grid connection status",
    # Historical Data
    "telemetry_history": "Charge history: start_date end_date [time_zone]",
    "energy_history": "Energy totals: start_date end_date period [time_zone]",
    "backup_history": "Backup events: start_date end_date period [time_zone]",
    "calendar_history": "Calendar history: kind start_date end_date period [time_zone]",
    # Control Commands
    "set_backup_reserve": "Set backup reserve percentage: percent (0-100)",
    "set_storm_mode": "Enable/disable Storm Watch: true|false",
    "set_site_name": "Set site display name: name",
    # Unsupported (will show errors)
    "operation": "Operation settings (unsupported)",
    "system_status": "System status (unsupported)",
    "sitemaster": "Sitemaster (unsupported)",
    "networks": "Networks (unsupported)",
    "grid_faults": "Grid faults (unsupported)",
    "meters": "Meters by category: [category] (unsupported)",
}


class UsageError(Exception):
    pass


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        raise UsageError(message)


def build_parser() -> ArgumentParser:
    epilog = "Commands:\n" + "\n".join(f"  {name:<20} {text}" for name, text in COMMANDS.items())
    parser = ArgumentParser(prog="pyfleetapi", description="Tesla FleetAPI - Command Line Interface",
                            epilog=epilog, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("command", choices=list(COMMANDS), metavar="command", help="Command to execute")
    parser.add_argument("args", nargs="*", help="Arguments for the command")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--site-id", type=int, default=0, help="Energy site ID (default SITE_ID or first site)")
    parser.add_argument("--region", choices=list(FLEET_API_URLS), help="Fleet API region (default na)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def to_json(value):
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, dict):
        return {key: to_json(item) for key, item in value.items()}
    if isinstance(value, list):
        return [to_json(item) for item in value]
    return value


def write_result(value):
    print(json.dumps(to_json(value), indent=4))


def need_args(args, count: int, usage: str):
    if len(args) < count:
        raise UsageError(f"usage: {usage}")


def optional_arg(args, index: int) -> Optional[str]:
    return args[index] if len(args) > index else None


def run_command(pw: Powerwall, command: str, args) -> int:
    """Execute command against pw and print the result"""
    if command == "products":
        write_result(pw.get_energy_products())
    elif command == "status":
        write_result(pw.get_status())
    elif command == "site_info":
        write_result(pw.get_site_info())
    elif command == "aggregates":
        write_result(pw.get_meters_aggregates())
    elif command == "soe":
        write_result(pw.get_soe())
    elif command == "grid_status":
        write_result(pw.get_grid_status())
    elif command == "telemetry_history":
        need_args(args, 2, "telemetry_history start_date end_date [time_zone]")
        write_result(pw.get_telemetry_history(args[0], args[1], optional_arg(args, 2)))
    elif command == "energy_history":
        need_args(args, 3, "energy_history start_date end_date period [time_zone]")
        write_result(pw.get_energy_history(args[0], args[1], args[2], optional_arg(args, 3)))
    elif command == "backup_history":
        need_args(args, 3, "backup_history start_date end_date period [time_zone]")
        write_result(pw.get_backup_history(args[0], args[1], args[2], optional_arg(args, 3)))
    elif command == "calendar_history":
        need_args(args, 4, "calendar_history kind start_date end_date period [time_zone]")
        write_result(pw.get_calendar_history(args[0], args[1], args[2], args[3], optional_arg(args, 4)))
    elif command == "set_backup_reserve":
        need_args(args, 1, "set_backup_reserve percent")
        try:
            percent = int(args[0])
        except ValueError:
            raise UsageError(f"invalid percentage: {args[0]}") from None
        pw.set_backup_reserve(percent)
        print(f"Backup reserve set to {percent}%")
    elif command == "set_storm_mode":
        need_args(args, 1, "set_storm_mode true|false")
        enabled = args[0].lower() == "true"
        pw.set_storm_mode(enabled)
        print(f"Storm Watch mode {'enabled' if enabled else 'disabled'}")
    elif command == "set_site_name":
        need_args(args, 1, "set_site_name name")
        name = " ".join(args)
        pw.set_site_name(name)
        print(f"Site name set to '{name}'")
    elif command == "operation":
        write_result(pw.get_operation())
    elif command == "system_status":
        write_result(pw.get_system_status())
    elif command == "sitemaster":
        write_result(pw.get_sitemaster())
    elif command == "networks":
        write_result(pw.get_networks())
    elif command == "grid_faults":
        write_result(pw.get_grid_faults())
    elif command == "meters":
        write_result(pw.get_meters(optional_arg(args, 0) or "site"))
    return EXIT_OK


def select_site(pw: Powerwall, site_id: int) -> int:
    """Select site_id, or the first energy product when site_id is 0. Returns exit code."""
    if not site_id:
        try:
            products = pw.get_energy_products()
        except (PyFleetAPIError, requests.RequestException, ValueError) as err:
            print(f"Error getting energy products: {err}", file=sys.stderr)
            return EXIT_SETUP
        if not products:
            print("Error: No energy products found", file=sys.stderr)
            return EXIT_SETUP
        site_id = products[0].energy_site_id
        print(f"Auto-selected energy site: {products[0].site_name} (ID: {site_id})", file=sys.stderr)
    pw.select_energy_site(site_id)
    return EXIT_OK


def credentials_help():
    print("Error: ACCESS_TOKEN, REFRESH_TOKEN, and CLIENT_ID environment variables are required\n",
          file=sys.stderr)
    print("Environment setup:\n"
          "  export ACCESS_TOKEN=\"your-tesla-access-token\"\n"
          "  export REFRESH_TOKEN=\"your-tesla-refresh-token\"\n"
          "  export CLIENT_ID=\"your-oauth-client-id\"\n"
          "  export SITE_ID=\"your-energy-site-id\"   # optional\n", file=sys.stderr)


def handle_error(err: Exception) -> int:
    if isinstance(err, UnsupportedError):
        print(f"Unsupported operation: {err.reason}", file=sys.stderr)
        return EXIT_UNSUPPORTED
    if isinstance(err, TokenExpiredError):
        print(f"Token expired: {err}", file=sys.stderr)
        print("Please refresh your ACCESS_TOKEN and REFRESH_TOKEN", file=sys.stderr)
        return EXIT_TOKEN_EXPIRED
    if isinstance(err, RateLimitError):
        print(f"Rate limit exceeded: {err}", file=sys.stderr)
        return EXIT_RATE_LIMITED
    print(f"API error: {err}", file=sys.stderr)
    return EXIT_ERROR


def main(argv=None, client: Optional[Powerwall] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as err:
        print(f"Error: {err}", file=sys.stderr)
        return EXIT_USAGE

    load_dotenv()
    settings = FleetSettings()
    if args.debug or settings.debug:
        set_debug(True)

    pw = client
    if pw is None:
        if not settings.has_credentials:
            credentials_help()
            return EXIT_SETUP
        if args.region:
            settings.region = args.region
        pw = settings.create_client()

    rc = select_site(pw, args.site_id or settings.site_id or pw.get_selected_energy_site())
    if rc != EXIT_OK:
        return rc

    try:
        return run_command(pw, args.command, args.args)
    except UsageError as err:
        print(f"Error: {err}", file=sys.stderr)
        return EXIT_USAGE
    except (PyFleetAPIError, requests.RequestException, ValueError) as err:
        return handle_error(err)


if __name__ == "__main__":
    sys.exit(main())
