#!/usr/bin/env python3
import argparse
import sys

from pymodbus.exceptions import ModbusException

from caparoc_device import create_connection
from caparoc_dispatch import Dispatcher
from caparoc_options import (
    DEFAULT_IP,
    DEFAULT_PORT,
    DEFAULT_SLAVE_ID,
    DEFAULT_TIMEOUT_S,
    FLAG_SPECS,
    SCALAR,
    SWITCH,
    decode_options,
    dump_options,
)


class StoreOnce(argparse.Action):
    """Store a single-value flag, rejecting a second occurrence."""

    def __call__(self, parser, namespace, values, option_string=None):
        if getattr(namespace, self.dest, None) is not None:
            parser.error(f"argument {option_string}: may only be given once")
        setattr(namespace, self.dest, values)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CAPAROC Commander - Modbus TCP command-line tool")
    parser.add_argument("-i", "--ip", default=DEFAULT_IP, help=f"IP address of the CAPAROC device (default: {DEFAULT_IP})")
    parser.add_argument("-p", "--port", type=int, default=DEFAULT_PORT, help=f"Modbus TCP port (default: {DEFAULT_PORT})")
    parser.add_argument(
        "-t", "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_S,
        help=f"Connection timeout in seconds (default: {DEFAULT_TIMEOUT_S:g})",
    )
    parser.add_argument(
        "--slave-id",
        type=lambda s: int(s, 0),
        default=DEFAULT_SLAVE_ID,
        help=f"Modbus slave id used for every request (default: {DEFAULT_SLAVE_ID})",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug output")

    actions = parser.add_argument_group("actions", "Executed in the order listed here; repeatable groups run in order")
    for spec in FLAG_SPECS:
        if spec.arity == SWITCH:
            actions.add_argument(*spec.flags, dest=spec.dest, action="count", default=0, help=spec.help)
        elif spec.arity == SCALAR:
            actions.add_argument(*spec.flags, dest=spec.dest, action=StoreOnce, metavar=spec.metavar, help=spec.help)
        else:
            actions.add_argument(
                *spec.flags,
                dest=spec.dest,
                action="extend",
                nargs="+" if spec.variadic else spec.arity,
                metavar=spec.metavar,
                help=spec.help,
            )
    return parser


def main(argv: list[str] | None = None) -> int:
    options = decode_options(build_parser().parse_args(argv))

    if options.debug:
        print("========================")
        print("CAPAROC Commander")
        print("========================")
        print(f"Connecting to {options.ip_address}:{options.port}")
        print("")
        print("Command Line Options:")
        print(dump_options(options))
        print("")

    try:
        device = create_connection(options.ip_address, options.port, options.timeout, options.slave_id)
    except (ConnectionError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        if options.debug:
            print("Connected successfully!")
            print("")
        Dispatcher(device, options).run()
        return 0
    finally:
        device.close()


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except (OSError, ModbusException) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1)
