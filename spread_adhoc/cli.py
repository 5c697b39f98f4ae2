"""
This module purpose is to handle command line interface
"""

import argparse
import sys

from . import config
from .allocator import Allocator
from .app_config import AllocatorSettings
from .config_manager import ConfigManager
from .errors import AllocatorError, ConfigError, NotFoundError
from .models import RemoteUserAccess
from .utils import setup_logging, info, success, error, fatal


def main(argv=None) -> int:
    """
    main: entry point of spread-adhoc-allocator, returns the exit code
    """
    parser = argparse.ArgumentParser(
        prog="spread-adhoc-allocator",
        description="ad-hoc LXD node allocator for spread")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # spread-adhoc-allocator allocate <system> <user> <password>
    prepare_cmd_allocate(subparsers)

    # spread-adhoc-allocator deallocate <addr>:<port>
    prepare_cmd_deallocate(subparsers)

    # spread-adhoc-allocator cleanup
    prepare_cmd_cleanup(subparsers)

    args = parser.parse_args(argv)

    try:
        user_config = config.load_user_config()
        settings = AllocatorSettings.load(ConfigManager(user_config=user_config))
    except ConfigError as e:
        fatal(str(e))
        return 1

    setup_logging("DEBUG" if args.verbose else settings.log_level)

    if args.command == "allocate":
        return cmd_allocate(args, settings, user_config)
    elif args.command == "deallocate":
        return cmd_deallocate(args, settings)
    elif args.command == "cleanup":
        return cmd_cleanup(args, settings)
    return 2


def prepare_cmd_allocate(subparsers):
    """
    prepare_cmd_allocate: prepares parser for subcommand and args for `allocate`
    """
    alloc_p = subparsers.add_parser("allocate", help="Allocate a node for a spread system")
    alloc_p.add_argument("system", help="Spread system name")
    alloc_p.add_argument("user", help="User name for remote access")
    alloc_p.add_argument("password", help="Password for remote access")


def cmd_allocate(args, settings: AllocatorSettings, user_config) -> int:
    """
    cmd_allocate: handles 'allocate' command, prints <addr>:<port> of the node
    """
    conf_name = config.config_file_name()
    try:
        cfg_path = config.locate(conf_name)
        conf = config.load(cfg_path, user_config)
    except ConfigError as e:
        fatal(f"cannot set up allocator: {e}")
        return 1

    try:
        node = Allocator(conf, settings=settings).allocate(
            args.system,
            RemoteUserAccess(user=args.user, password=args.password),
        )
    except NotFoundError as e:
        error(f"cannot allocate: {e}")
        return 1
    except AllocatorError as e:
        # backend failures already carry their "cannot allocate system" context
        error(str(e))
        return 1

    info(f"allocated {node.name}")
    print(f"{node.addr}:{node.ssh_port}")
    return 0


def prepare_cmd_deallocate(subparsers):
    """
    prepare_cmd_deallocate: prepares parser for subcommand and args for `deallocate`
    """
    dealloc_p = subparsers.add_parser("deallocate",
                                      help="Deallocate the node with a given address")
    dealloc_p.add_argument("address", help="Node address, as <addr>:<port>")


def cmd_deallocate(args, settings: AllocatorSettings) -> int:
    """
    cmd_deallocate: handles 'deallocate' command
    """
    sp = args.address.split(":")
    if len(sp) != 2:
        error("invalid address, expected <addr>:<port>")
        return 1
    addr = sp[0]

    try:
        Allocator(settings=settings).deallocate_by_addr(addr)
    except NotFoundError:
        error(f"cannot deallocate: no running node with address {addr}")
        return 1
    except AllocatorError as e:
        error(str(e))
        return 1

    success(f"deallocated node with address {addr}")
    return 0


def prepare_cmd_cleanup(subparsers):
    """
    prepare_cmd_cleanup: prepares parser for subcommand `cleanup`
    """
    subparsers.add_parser("cleanup", help="Deallocate all nodes")


def cmd_cleanup(args, settings: AllocatorSettings) -> int:
    """
    cmd_cleanup: handles 'cleanup' command
    """
    try:
        Allocator(settings=settings).deallocate_all()
    except AllocatorError as e:
        error(str(e))
        return 1

    success("all nodes deallocated")
    return 0


if __name__ == "__main__":
    sys.exit(main())
