#!/usr/bin/env python3
"""
Command-line decoding for caparoc_commander.

Flags are registered from one table (FLAG_SPECS). After argparse is done,
decode_options() walks the same table and seals the result into an
immutable Options value: the ordered action queue plus the raw argument
groups of every repeatable flag. Numbers stay strings here and are parsed
per element at dispatch time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Sequence

DEFAULT_IP = "192.168.1.2"
DEFAULT_PORT = 502
DEFAULT_TIMEOUT_S = 3.0
DEFAULT_SLAVE_ID = 1

BASE_AUTO = 0
BASE_DECIMAL = 10
BASE_HEX = 16

MODULE_MIN = 1
MODULE_MAX = 16
CHANNEL_MIN = 1
CHANNEL_MAX = 4

_DIGITS = {
    BASE_DECIMAL: "0123456789",
    BASE_HEX: "0123456789abcdef",
}

STATE_WORDS = {
    "on": True,
    "true": True,
    "1": True,
    "off": False,
    "false": False,
    "0": False,
}


class Action(Enum):
    LIST_REGISTERS = auto()
    REGISTER_INFO = auto()
    SEARCH_REGISTERS = auto()
    READ_UINT16 = auto()
    READ_UINT32 = auto()
    READ_STRING32 = auto()
    WRITE_UINT16 = auto()
    WRITE_UINT32 = auto()
    RESET_APPLICATION_PARAMS_POWER_AND_CB = auto()
    GLOBAL_CHANNEL_ERROR_RESET_ALL_CB = auto()
    ERROR_COUNTER_RESET_ALL_CB = auto()
    RESET_APPLICATION_PARAMS_QUINT = auto()
    GET_PRODUCT_NAME_POWER_MODULE = auto()
    GET_PRODUCT_NAME_MODULE = auto()
    GET_PRODUCT_NAME_QUINT = auto()
    GET_NUM_CONNECTED_MODULES = auto()
    GET_NOMINAL_CURRENT = auto()
    SET_NOMINAL_CURRENT = auto()
    UNLOCK_NOMINAL_CURRENT = auto()
    PRINT_DEVICE_INFO = auto()
    GET_SYSTEM_STATUS = auto()
    GET_CHANNEL_STATUS = auto()
    GET_LOAD_CURRENT = auto()
    CONTROL_CHANNEL = auto()
    READ_COIL = auto()
    WRITE_COIL = auto()


class ParseError(ValueError):
    def __init__(self, token: str, reason: str):
        super().__init__(f"{reason}: '{token}'")
        self.token = token
        self.reason = reason


def parse_integer(token: str, base: int = BASE_AUTO, width: int = 16) -> int | ParseError:
    """
    Parse an unsigned register address or value.

    base=BASE_HEX reads hex digits with an optional 0x prefix (addresses),
    base=BASE_AUTO picks hex for a 0x prefix and decimal otherwise (values),
    base=BASE_DECIMAL accepts plain decimal digits only. The result must fit
    in `width` bits. Failures are returned, not raised.
    """
    text = token.strip()
    if text == "":
        return ParseError(token, "empty number")

    has_prefix = text[:2].lower() == "0x"
    if base == BASE_AUTO:
        base = BASE_HEX if has_prefix else BASE_DECIMAL
    if has_prefix:
        if base != BASE_HEX:
            return ParseError(token, "hex prefix in a decimal field")
        text = text[2:]

    digits = _DIGITS[base]
    if text == "" or any(ch not in digits for ch in text.lower()):
        return ParseError(token, f"invalid base-{base} number")

    limit = (1 << width) - 1
    if len(text.lstrip("0")) > len(f"{limit:x}" if base == BASE_HEX else str(limit)):
        return ParseError(token, f"out of range for {width}-bit field")
    value = int(text, base)
    if value > limit:
        return ParseError(token, f"out of range for {width}-bit field")
    return value


def require_integer(token: str, base: int = BASE_AUTO, width: int = 16) -> int:
    result = parse_integer(token, base, width)
    if isinstance(result, ParseError):
        raise result
    return result


def parse_address(token: str) -> int:
    return require_integer(token, BASE_HEX, 16)


def parse_module(token: str) -> int:
    module = require_integer(token, BASE_DECIMAL, 8)
    if module < MODULE_MIN or module > MODULE_MAX:
        raise ParseError(token, f"module number must be {MODULE_MIN}..{MODULE_MAX}")
    return module


def parse_channel(token: str) -> int:
    channel = require_integer(token, BASE_DECIMAL, 8)
    if channel < CHANNEL_MIN or channel > CHANNEL_MAX:
        raise ParseError(token, f"channel number must be {CHANNEL_MIN}..{CHANNEL_MAX}")
    return channel


def parse_state(token: str) -> bool:
    key = token.strip().lower()
    if key not in STATE_WORDS:
        raise ParseError(token, "state must be on|off|true|false|1|0")
    return STATE_WORDS[key]


def group_tokens(tokens: Sequence[str], arity: int) -> list[tuple[str, ...]]:
    """Re-group a flat token list into arity-sized tuples; a partial tail is dropped."""
    if arity < 1:
        raise ValueError("arity must be >= 1")
    count = len(tokens) // arity
    return [tuple(tokens[i * arity:(i + 1) * arity]) for i in range(count)]


SWITCH = 0
SCALAR = -1


@dataclass(frozen=True)
class FlagSpec:
    action: Action
    flags: tuple[str, ...]
    help: str
    arity: int = SWITCH
    metavar: tuple[str, ...] | str | None = None
    variadic: bool = False

    @property
    def dest(self) -> str:
        return self.flags[-1].lstrip("-").replace("-", "_")


# Registration order is also queue order across flag kinds.
FLAG_SPECS: tuple[FlagSpec, ...] = (
    FlagSpec(Action.LIST_REGISTERS, ("-l", "--list"), "List all registers"),
    FlagSpec(
        Action.RESET_APPLICATION_PARAMS_POWER_AND_CB,
        ("--reset-application-params-power-and-cb",),
        "Reset application parameters for Power Module and Circuit Breakers",
    ),
    FlagSpec(
        Action.GLOBAL_CHANNEL_ERROR_RESET_ALL_CB,
        ("--global-channel-error-reset-all-cb",),
        "Global channel error reset for all Circuit Breakers",
    ),
    FlagSpec(
        Action.ERROR_COUNTER_RESET_ALL_CB,
        ("--error-counter-reset-all-cb",),
        "Reset error counters for all Circuit Breakers",
    ),
    FlagSpec(
        Action.RESET_APPLICATION_PARAMS_QUINT,
        ("--reset-application-params-quint",),
        "Reset application parameters for QUINT Power Supply",
    ),
    FlagSpec(
        Action.GET_PRODUCT_NAME_POWER_MODULE,
        ("--product-name-power-module",),
        "Get product name for Power Module",
    ),
    FlagSpec(
        Action.GET_PRODUCT_NAME_QUINT,
        ("--product-name-quint",),
        "Get product name for QUINT Power Supply",
    ),
    FlagSpec(
        Action.GET_NUM_CONNECTED_MODULES,
        ("--num-connected-modules",),
        "Get number of currently connected modules",
    ),
    FlagSpec(
        Action.PRINT_DEVICE_INFO,
        ("--print-device-info",),
        "Print device information (modules, product names, channels)",
    ),
    FlagSpec(
        Action.GET_SYSTEM_STATUS,
        ("--get-system-status",),
        "Get system-level status (voltage, current, temperature)",
    ),
    FlagSpec(
        Action.REGISTER_INFO,
        ("-r", "--register"),
        "Get info about a specific register (e.g. 0x0010)",
        arity=SCALAR,
        metavar="ADDR",
    ),
    FlagSpec(
        Action.SEARCH_REGISTERS,
        ("-s", "--search"),
        "Search for registers by name (case-insensitive substring match)",
        arity=SCALAR,
        metavar="TEXT",
    ),
    FlagSpec(Action.READ_UINT16, ("--read-uint16",), "Read UINT16 register (e.g. 0x0010)", arity=SCALAR, metavar="ADDR"),
    FlagSpec(Action.READ_UINT32, ("--read-uint32",), "Read UINT32 register (e.g. 0x0100)", arity=SCALAR, metavar="ADDR"),
    FlagSpec(
        Action.READ_STRING32,
        ("--read-string32",),
        "Read STRING32 register (e.g. 0x1000)",
        arity=SCALAR,
        metavar="ADDR",
    ),
    FlagSpec(
        Action.WRITE_UINT16,
        ("--write-uint16",),
        "Write UINT16 register (address value), repeatable",
        arity=2,
        metavar=("ADDR", "VALUE"),
    ),
    FlagSpec(
        Action.WRITE_UINT32,
        ("--write-uint32",),
        "Write UINT32 register (address value), repeatable",
        arity=2,
        metavar=("ADDR", "VALUE"),
    ),
    FlagSpec(
        Action.GET_PRODUCT_NAME_MODULE,
        ("--product-name-module",),
        f"Get product name for specific module(s) ({MODULE_MIN}-{MODULE_MAX})",
        arity=1,
        metavar="MODULE",
        variadic=True,
    ),
    FlagSpec(
        Action.GET_NOMINAL_CURRENT,
        ("--get-nominal-current",),
        "Get nominal current (module_number channel_number)",
        arity=2,
        metavar=("MODULE", "CHANNEL"),
    ),
    FlagSpec(
        Action.SET_NOMINAL_CURRENT,
        ("--set-nominal-current",),
        "Set nominal current (module_number channel_number value)",
        arity=3,
        metavar=("MODULE", "CHANNEL", "AMPS"),
    ),
    FlagSpec(
        Action.UNLOCK_NOMINAL_CURRENT,
        ("--unlock-nominal-current",),
        "Unlock nominal current parametrization (module_number channel_number)",
        arity=2,
        metavar=("MODULE", "CHANNEL"),
    ),
    FlagSpec(
        Action.GET_CHANNEL_STATUS,
        ("--get-channel-status",),
        "Get status for specific channel (module_number channel_number)",
        arity=2,
        metavar=("MODULE", "CHANNEL"),
    ),
    FlagSpec(
        Action.GET_LOAD_CURRENT,
        ("--get-load-current",),
        "Get actual load current for channel (module_number channel_number)",
        arity=2,
        metavar=("MODULE", "CHANNEL"),
    ),
    FlagSpec(
        Action.CONTROL_CHANNEL,
        ("--control-channel",),
        "Control channel on/off (module_number channel_number on|off)",
        arity=3,
        metavar=("MODULE", "CHANNEL", "STATE"),
    ),
    FlagSpec(Action.READ_COIL, ("--read-coil",), "Read coil status (address)", arity=1, metavar="ADDR"),
    FlagSpec(
        Action.WRITE_COIL,
        ("--write-coil",),
        "Write coil (address state) - state can be on|off|true|false|1|0",
        arity=2,
        metavar=("ADDR", "STATE"),
    ),
)

FLAG_BY_ACTION = {spec.action: spec for spec in FLAG_SPECS}

_missing = [action.name for action in Action if action not in FLAG_BY_ACTION]
if _missing:
    raise RuntimeError(f"Actions without a command-line flag: {', '.join(_missing)}")


@dataclass(frozen=True)
class Options:
    ip_address: str = DEFAULT_IP
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT_S
    slave_id: int = DEFAULT_SLAVE_ID
    debug: bool = False
    actions: tuple[Action, ...] = ()
    scalars: tuple[tuple[Action, str], ...] = ()
    groups: tuple[tuple[Action, tuple[tuple[str, ...], ...]], ...] = ()

    def scalar(self, action: Action) -> str | None:
        return dict(self.scalars).get(action)

    def groups_for(self, action: Action) -> tuple[tuple[str, ...], ...]:
        return dict(self.groups).get(action, ())


class OptionsBuilder:
    def __init__(
        self,
        ip_address: str = DEFAULT_IP,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT_S,
        slave_id: int = DEFAULT_SLAVE_ID,
        debug: bool = False,
    ):
        self.ip_address = ip_address
        self.port = port
        self.timeout = timeout
        self.slave_id = slave_id
        self.debug = debug
        self._actions: list[Action] = []
        self._scalars: dict[Action, str] = {}
        self._groups: dict[Action, list[tuple[str, ...]]] = {}
        self._sealed = False

    def _check_open(self) -> None:
        if self._sealed:
            raise RuntimeError("Options already sealed")

    def add_switch(self, action: Action) -> None:
        self._check_open()
        self._actions.append(action)

    def add_scalar(self, action: Action, token: str) -> None:
        self._check_open()
        self._scalars[action] = token
        self._actions.append(action)

    def add_groups(self, action: Action, tokens: Sequence[str], arity: int) -> None:
        self._check_open()
        groups = group_tokens(tokens, arity)
        if not groups:
            return
        self._groups.setdefault(action, []).extend(groups)
        if action not in self._actions:
            self._actions.append(action)

    def seal(self) -> Options:
        self._check_open()
        self._sealed = True
        return Options(
            ip_address=self.ip_address,
            port=self.port,
            timeout=self.timeout,
            slave_id=self.slave_id,
            debug=self.debug,
            actions=tuple(self._actions),
            scalars=tuple(self._scalars.items()),
            groups=tuple((action, tuple(groups)) for action, groups in self._groups.items()),
        )


def decode_options(args) -> Options:
    """Build Options from an argparse namespace produced by build_parser()."""
    builder = OptionsBuilder(
        ip_address=args.ip,
        port=args.port,
        timeout=args.timeout,
        slave_id=args.slave_id,
        debug=args.debug,
    )
    for spec in FLAG_SPECS:
        value = getattr(args, spec.dest, None)
        if spec.arity == SWITCH:
            if value:
                builder.add_switch(spec.action)
        elif spec.arity == SCALAR:
            if value is not None:
                builder.add_scalar(spec.action, value)
        elif value:
            builder.add_groups(spec.action, value, spec.arity)
    return builder.seal()


def dump_options(options: Options) -> str:
    lines = [
        f"ip_address: {options.ip_address}",
        f"port: {options.port}",
        f"timeout_seconds: {options.timeout}",
        f"slave_id: {options.slave_id}",
        "actions:",
    ]
    if options.actions:
        lines.extend(f"  - {action.name}" for action in options.actions)
    else:
        lines.append("  (none)")

    for spec in FLAG_SPECS:
        if spec.arity == SCALAR:
            lines.append(f"{spec.dest}: {options.scalar(spec.action) or ''}")

    for spec in FLAG_SPECS:
        if spec.arity < 1:
            continue
        lines.append(f"{spec.dest}:")
        groups = options.groups_for(spec.action)
        if not groups:
            lines.append("  (none)")
            continue
        names = spec.metavar if isinstance(spec.metavar, tuple) else (spec.metavar,)
        for group in groups:
            lines.append("  - " + ", ".join(f"{name.lower()}: {tok}" for name, tok in zip(names, group)))
    return "\n".join(lines)
