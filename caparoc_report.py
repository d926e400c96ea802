#!/usr/bin/env python3
"""
Text rendering of dispatch outcomes.

Every action has exactly one header template in HEADERS and one body
renderer in _BODIES. Section actions print their header once, element
actions print it once per argument group.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

from caparoc_options import Action
from caparoc_registers import format_register_line


class OutcomeStatus(Enum):
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class DispatchOutcome:
    status: OutcomeStatus
    value: Any = None
    subject: dict[str, Any] = field(default_factory=dict)
    message: str = ""
    notes: tuple[str, ...] = ()

    @classmethod
    def success(cls, value: Any = None, notes: tuple[str, ...] = (), **subject: Any) -> DispatchOutcome:
        return cls(OutcomeStatus.SUCCESS, value=value, subject=subject, notes=notes)

    @classmethod
    def unavailable(cls, message: str = "", notes: tuple[str, ...] = (), **subject: Any) -> DispatchOutcome:
        return cls(OutcomeStatus.UNAVAILABLE, subject=subject, message=message, notes=notes)

    @classmethod
    def error(cls, message: str) -> DispatchOutcome:
        return cls(OutcomeStatus.ERROR, message=message)

    @classmethod
    def from_optional(cls, value: Any, **subject: Any) -> DispatchOutcome:
        if value is None:
            return cls.unavailable(**subject)
        return cls.success(value, **subject)

    @classmethod
    def from_flag(cls, ok: bool, message: str = "", **subject: Any) -> DispatchOutcome:
        if ok:
            return cls.success(True, **subject)
        return cls.unavailable(message, **subject)


HEADERS: dict[Action, str] = {
    Action.LIST_REGISTERS: "All Registers",
    Action.REGISTER_INFO: "Register Information",
    Action.SEARCH_REGISTERS: "Search Results for '{filter}'",
    Action.READ_UINT16: "Read UINT16 Register",
    Action.READ_UINT32: "Read UINT32 Register",
    Action.READ_STRING32: "Read STRING32 Register",
    Action.WRITE_UINT16: "Write UINT16 Registers",
    Action.WRITE_UINT32: "Write UINT32 Registers",
    Action.RESET_APPLICATION_PARAMS_POWER_AND_CB:
        "Reset Application Parameters (Power Module and Circuit Breakers)",
    Action.GLOBAL_CHANNEL_ERROR_RESET_ALL_CB: "Global Channel Error Reset (All Circuit Breakers)",
    Action.ERROR_COUNTER_RESET_ALL_CB: "Error Counter Reset (All Circuit Breakers)",
    Action.RESET_APPLICATION_PARAMS_QUINT: "Reset Application Parameters (QUINT Power Supply)",
    Action.GET_PRODUCT_NAME_POWER_MODULE: "Product Name (Power Module)",
    Action.GET_PRODUCT_NAME_MODULE: "Product Name (Module {module})",
    Action.GET_PRODUCT_NAME_QUINT: "Product Name (QUINT Power Supply)",
    Action.GET_NUM_CONNECTED_MODULES: "Number of Currently Connected Modules",
    Action.GET_NOMINAL_CURRENT: "Get Nominal Current (Module {module}, Channel {channel})",
    Action.SET_NOMINAL_CURRENT: "Set Nominal Current (Module {module}, Channel {channel} to {amps} A)",
    Action.UNLOCK_NOMINAL_CURRENT: "Unlock Nominal Current (Module {module}, Channel {channel})",
    Action.PRINT_DEVICE_INFO: "Device Information",
    Action.GET_SYSTEM_STATUS: "System Status",
    Action.GET_CHANNEL_STATUS: "Channel Status (Module {module}, Channel {channel})",
    Action.GET_LOAD_CURRENT: "Load Current (Module {module}, Channel {channel})",
    Action.CONTROL_CHANNEL: "Control Channel (Module {module}, Channel {channel} -> {state})",
    Action.READ_COIL: "Read Coil",
    Action.WRITE_COIL: "Write Coil",
}

# Header repeated per argument group, after the group parsed.
ELEMENT_ACTIONS = frozenset({
    Action.GET_PRODUCT_NAME_MODULE,
    Action.GET_NOMINAL_CURRENT,
    Action.SET_NOMINAL_CURRENT,
    Action.UNLOCK_NOMINAL_CURRENT,
    Action.GET_CHANNEL_STATUS,
    Action.GET_LOAD_CURRENT,
    Action.CONTROL_CHANNEL,
})

# Lines under these headers are indented.
INDENTED_ACTIONS = frozenset({Action.WRITE_UINT16, Action.WRITE_UINT32})

ERROR_LABELS = {Action.UNLOCK_NOMINAL_CURRENT: "Error parsing arguments"}

# Scalar reads echo the raw argument below the header.
ADDRESS_ECHO_ACTIONS = frozenset({
    Action.REGISTER_INFO,
    Action.READ_UINT16,
    Action.READ_UINT32,
    Action.READ_STRING32,
})


def yes_no(flag: bool) -> str:
    return "YES" if flag else "no"


def on_off(flag: bool) -> str:
    return "ON" if flag else "OFF"


def success_failed(outcome: DispatchOutcome) -> list[str]:
    if outcome.status == OutcomeStatus.SUCCESS:
        return ["SUCCESS"]
    if outcome.message:
        return [f"FAILED ({outcome.message})"]
    return ["FAILED"]


def _value_or(failed_text: str, fmt: str = "{}") -> Callable[[DispatchOutcome], list[str]]:
    def render(outcome: DispatchOutcome) -> list[str]:
        if outcome.status == OutcomeStatus.SUCCESS:
            return [fmt.format(outcome.value)]
        return [failed_text]
    return render


def _render_search(outcome: DispatchOutcome) -> list[str]:
    found = outcome.value or []
    lines = [f"Found {len(found)} registers"]
    lines.extend(f"  {format_register_line(reg)}" for reg in found)
    return lines


def _render_write_register(outcome: DispatchOutcome) -> list[str]:
    result = "SUCCESS" if outcome.status == OutcomeStatus.SUCCESS else "FAILED"
    return [f"0x{outcome.subject['address']:04X} = {outcome.subject['word']} ({result})"]


def _render_device_info(outcome: DispatchOutcome) -> list[str]:
    if outcome.status == OutcomeStatus.SUCCESS:
        return [outcome.value]
    return [f"Failed to read device information: {outcome.message}"]


def _render_system_status(outcome: DispatchOutcome) -> list[str]:
    status = outcome.value
    lines = []
    if status.global_status is not None:
        bits = status.global_status
        lines += [
            "Global Status Bits:",
            f"  Undervoltage: {yes_no(bits.undervoltage)}",
            f"  Overvoltage: {yes_no(bits.overvoltage)}",
            f"  Cumulative Channel Error: {yes_no(bits.cumulative_channel_error)}",
            f"  Cumulative 80% Warning: {yes_no(bits.cumulative_80_warning)}",
            f"  System Current Too High: {yes_no(bits.system_current_too_high)}",
        ]
    else:
        lines.append("Failed to read global status")
    if status.total_current is not None:
        lines.append(f"Total System Current: {status.total_current} A")
    if status.input_voltage is not None:
        lines.append(f"Input Voltage: {status.input_voltage / 100.0:.2f} V")
    if status.sum_nominal_currents is not None:
        lines.append(f"Sum of Nominal Currents: {status.sum_nominal_currents} A")
    if status.internal_temperature is not None:
        lines.append(f"Internal Temperature: {status.internal_temperature} °C")
    return lines


def _render_channel_status(outcome: DispatchOutcome) -> list[str]:
    if outcome.status != OutcomeStatus.SUCCESS:
        return ["FAILED"]
    st = outcome.value
    return [
        f"  80% Warning: {yes_no(st.warning_80_percent)}",
        f"  Overload: {yes_no(st.overload)}",
        f"  Short Circuit: {yes_no(st.short_circuit)}",
        f"  Hardware Error: {yes_no(st.hardware_error)}",
        f"  Voltage Error: {yes_no(st.voltage_error)}",
        f"  Module Current Too High: {yes_no(st.module_current_too_high)}",
        f"  System Current Too High: {yes_no(st.system_current_too_high)}",
    ]


def _render_load_current(outcome: DispatchOutcome) -> list[str]:
    if outcome.status != OutcomeStatus.SUCCESS:
        return ["FAILED"]
    milliamps = outcome.value
    return [f"{milliamps / 1000.0:.1f} A ({milliamps} mA)"]


def _render_read_coil(outcome: DispatchOutcome) -> list[str]:
    address = outcome.subject["address"]
    if outcome.status == OutcomeStatus.SUCCESS:
        return [f"Coil 0x{address:04X}: {on_off(outcome.value)} ({str(bool(outcome.value)).lower()})"]
    return [f"Failed to read coil 0x{address:04X}: {outcome.message}"]


def _render_write_coil(outcome: DispatchOutcome) -> list[str]:
    address = outcome.subject["address"]
    state = on_off(outcome.subject["state"])
    if outcome.status == OutcomeStatus.SUCCESS:
        return [f"Coil 0x{address:04X} = {state} (SUCCESS)"]
    return [f"Coil 0x{address:04X} = {state} (FAILED): {outcome.message}"]


_BODIES: dict[Action, Callable[[DispatchOutcome], list[str]]] = {
    Action.LIST_REGISTERS: _value_or("No registers"),
    Action.REGISTER_INFO: _value_or("Register not found"),
    Action.SEARCH_REGISTERS: _render_search,
    Action.READ_UINT16: _value_or("Failed to read register", "Value: {}"),
    Action.READ_UINT32: _value_or("Failed to read register", "Value: {}"),
    Action.READ_STRING32: _value_or("Failed to read register", 'Value: "{}"'),
    Action.WRITE_UINT16: _render_write_register,
    Action.WRITE_UINT32: _render_write_register,
    Action.RESET_APPLICATION_PARAMS_POWER_AND_CB: success_failed,
    Action.GLOBAL_CHANNEL_ERROR_RESET_ALL_CB: success_failed,
    Action.ERROR_COUNTER_RESET_ALL_CB: success_failed,
    Action.RESET_APPLICATION_PARAMS_QUINT: success_failed,
    Action.GET_PRODUCT_NAME_POWER_MODULE: _value_or("Failed to read product name", "Name: {}"),
    Action.GET_PRODUCT_NAME_MODULE: _value_or(
        "Failed to read product name (module might not be installed)", "Name: {}"
    ),
    Action.GET_PRODUCT_NAME_QUINT: _value_or("Failed to read product name", "Name: {}"),
    Action.GET_NUM_CONNECTED_MODULES: _value_or(
        "Failed to read number of connected modules", "Connected modules: {}"
    ),
    Action.GET_NOMINAL_CURRENT: _value_or("Failed to read nominal current", "Nominal current: {} A"),
    Action.SET_NOMINAL_CURRENT: success_failed,
    Action.UNLOCK_NOMINAL_CURRENT: success_failed,
    Action.PRINT_DEVICE_INFO: _render_device_info,
    Action.GET_SYSTEM_STATUS: _render_system_status,
    Action.GET_CHANNEL_STATUS: _render_channel_status,
    Action.GET_LOAD_CURRENT: _render_load_current,
    Action.CONTROL_CHANNEL: success_failed,
    Action.READ_COIL: _render_read_coil,
    Action.WRITE_COIL: _render_write_coil,
}

for _table_name, _table in (("HEADERS", HEADERS), ("_BODIES", _BODIES)):
    _missing = [action.name for action in Action if action not in _table]
    if _missing:
        raise RuntimeError(f"{_table_name} has no entry for: {', '.join(_missing)}")


def _header(action: Action, subject: Mapping[str, Any]) -> str:
    return f"=== {HEADERS[action].format(**subject)} ==="


def section_header(action: Action, subject: Mapping[str, Any] | None = None) -> str | None:
    """Header printed once before the outcomes of a section action, None for element actions."""
    if action in ELEMENT_ACTIONS:
        return None
    subject = subject or {}
    lines = [_header(action, subject)]
    if action in ADDRESS_ECHO_ACTIONS:
        lines.append(f"Address: {subject.get('token', '')}")
    return "\n".join(lines)


def report(action: Action, outcome: DispatchOutcome) -> str:
    indent = "  " if action in INDENTED_ACTIONS else ""
    if outcome.status == OutcomeStatus.ERROR:
        return f"{indent}{ERROR_LABELS.get(action, 'Error')}: {outcome.message}"

    lines = []
    if action in ELEMENT_ACTIONS:
        lines.append(_header(action, outcome.subject))
    lines.extend(outcome.notes)
    lines.extend(indent + line for line in _BODIES[action](outcome))
    return "\n".join(lines)
