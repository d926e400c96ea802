#!/usr/bin/env python3
"""
Action dispatch for caparoc_commander.

Dispatcher walks the action queue of a sealed Options value in order and
runs every argument group of an action inside its own error boundary: a
malformed token fails that group only, the rest of the queue still runs.
Absent reads and failed writes are ordinary outcomes, not errors.
"""

from __future__ import annotations

from typing import Callable, Iterator

import caparoc_registers as regs
from caparoc_options import (
    BASE_AUTO,
    BASE_DECIMAL,
    Action,
    Options,
    parse_address,
    parse_channel,
    parse_module,
    parse_state,
    require_integer,
)
from caparoc_report import DispatchOutcome, report, section_header

Handler = Callable[..., DispatchOutcome]


class Dispatcher:
    def __init__(self, device, options: Options, emit: Callable[[str], None] = print):
        self.device = device
        self.options = options
        self.emit = emit

        self._handlers: dict[Action, Handler] = {
            Action.LIST_REGISTERS: self.list_registers,
            Action.REGISTER_INFO: self.register_info,
            Action.SEARCH_REGISTERS: self.search_registers,
            Action.READ_UINT16: self.read_uint16,
            Action.READ_UINT32: self.read_uint32,
            Action.READ_STRING32: self.read_string32,
            Action.WRITE_UINT16: self.write_uint16,
            Action.WRITE_UINT32: self.write_uint32,
            Action.RESET_APPLICATION_PARAMS_POWER_AND_CB: self._command(
                device.reset_application_params_power_and_cb
            ),
            Action.GLOBAL_CHANNEL_ERROR_RESET_ALL_CB: self._command(device.global_channel_error_reset_all_cb),
            Action.ERROR_COUNTER_RESET_ALL_CB: self._command(device.error_counter_reset_all_cb),
            Action.RESET_APPLICATION_PARAMS_QUINT: self._command(device.reset_application_params_quint),
            Action.GET_PRODUCT_NAME_POWER_MODULE: self._query(device.get_product_name_power_module),
            Action.GET_PRODUCT_NAME_MODULE: self.product_name_module,
            Action.GET_PRODUCT_NAME_QUINT: self._query(device.get_product_name_quint),
            Action.GET_NUM_CONNECTED_MODULES: self._query(device.get_num_connected_modules),
            Action.GET_NOMINAL_CURRENT: self.get_nominal_current,
            Action.SET_NOMINAL_CURRENT: self.set_nominal_current,
            Action.UNLOCK_NOMINAL_CURRENT: self.unlock_nominal_current,
            Action.PRINT_DEVICE_INFO: self.print_device_info,
            Action.GET_SYSTEM_STATUS: self.system_status,
            Action.GET_CHANNEL_STATUS: self.channel_status,
            Action.GET_LOAD_CURRENT: self.load_current,
            Action.CONTROL_CHANNEL: self.control_channel,
            Action.READ_COIL: self.read_coil,
            Action.WRITE_COIL: self.write_coil,
        }
        missing = [action.name for action in Action if action not in self._handlers]
        if missing:
            raise RuntimeError(f"No handler for: {', '.join(missing)}")

    def run(self) -> None:
        for action in self.options.actions:
            for block in self.dispatch(action):
                self.emit(block)

    def dispatch(self, action: Action) -> Iterator[str]:
        """Yield the report blocks of one queued action: section header first, then one per element."""
        scalar = self.options.scalar(action)
        groups = self.options.groups_for(action)
        if scalar is not None:
            elements = [(scalar,)]
        elif groups:
            elements = list(groups)
        else:
            elements = [()]

        subject = {}
        if action == Action.SEARCH_REGISTERS:
            subject["filter"] = elements[0][0]
        elif elements and elements[0]:
            subject["token"] = elements[0][0]
        header = section_header(action, subject)
        if header is not None:
            yield header

        handler = self._handlers[action]
        for fields in elements:
            yield report(action, self._isolated(handler, fields))

    @staticmethod
    def _isolated(handler: Handler, fields: tuple[str, ...]) -> DispatchOutcome:
        try:
            return handler(*fields)
        except ValueError as exc:
            return DispatchOutcome.error(str(exc))

    @staticmethod
    def _command(call: Callable[[], bool]) -> Handler:
        def handler() -> DispatchOutcome:
            return DispatchOutcome.from_flag(call())
        return handler

    @staticmethod
    def _query(call: Callable[[], object]) -> Handler:
        def handler() -> DispatchOutcome:
            return DispatchOutcome.from_optional(call())
        return handler

    # Register catalogue, no device traffic.

    def list_registers(self) -> DispatchOutcome:
        return DispatchOutcome.success(regs.list_all_registers())

    def register_info(self, token: str) -> DispatchOutcome:
        return DispatchOutcome.success(regs.get_register_info(parse_address(token)))

    def search_registers(self, text: str) -> DispatchOutcome:
        return DispatchOutcome.success(regs.find_registers(text))

    # Generic register access.

    def read_uint16(self, token: str) -> DispatchOutcome:
        return DispatchOutcome.from_optional(self.device.read_uint16(parse_address(token)))

    def read_uint32(self, token: str) -> DispatchOutcome:
        return DispatchOutcome.from_optional(self.device.read_uint32(parse_address(token)))

    def read_string32(self, token: str) -> DispatchOutcome:
        return DispatchOutcome.from_optional(self.device.read_string32(parse_address(token)))

    def write_uint16(self, address_token: str, value_token: str) -> DispatchOutcome:
        address = parse_address(address_token)
        value = require_integer(value_token, BASE_AUTO, 16)
        return DispatchOutcome.from_flag(self.device.write_uint16(address, value), address=address, word=value)

    def write_uint32(self, address_token: str, value_token: str) -> DispatchOutcome:
        address = parse_address(address_token)
        value = require_integer(value_token, BASE_AUTO, 32)
        return DispatchOutcome.from_flag(self.device.write_uint32(address, value), address=address, word=value)

    # Modules and channels.

    def product_name_module(self, module_token: str) -> DispatchOutcome:
        module = parse_module(module_token)
        return DispatchOutcome.from_optional(self.device.get_product_name_module(module), module=module)

    def get_nominal_current(self, module_token: str, channel_token: str) -> DispatchOutcome:
        module, channel = parse_module(module_token), parse_channel(channel_token)
        return DispatchOutcome.from_optional(
            self.device.get_nominal_current(module, channel), module=module, channel=channel
        )

    def set_nominal_current(self, module_token: str, channel_token: str, amps_token: str) -> DispatchOutcome:
        module, channel = parse_module(module_token), parse_channel(channel_token)
        amps = require_integer(amps_token, BASE_DECIMAL, 16)
        ok = self.device.set_nominal_current(module, channel, amps)
        return DispatchOutcome.from_flag(ok, module=module, channel=channel, amps=amps)

    def unlock_nominal_current(self, module_token: str, channel_token: str) -> DispatchOutcome:
        module, channel = parse_module(module_token), parse_channel(channel_token)
        subject = {"module": module, "channel": channel}
        if not self.device.write_uint16(regs.REG_GLOBAL_LOCK, 0):
            return DispatchOutcome.unavailable("global lock", **subject)
        channel_lock = regs.REG_CHANNEL_LOCK_BASE + regs.channel_offset(module, channel)
        if not self.device.write_uint16(channel_lock, 0):
            return DispatchOutcome.unavailable("channel lock", **subject)
        return DispatchOutcome.success(True, **subject)

    def channel_status(self, module_token: str, channel_token: str) -> DispatchOutcome:
        module, channel = parse_module(module_token), parse_channel(channel_token)
        return DispatchOutcome.from_optional(
            self.device.get_channel_status(module, channel), module=module, channel=channel
        )

    def load_current(self, module_token: str, channel_token: str) -> DispatchOutcome:
        module, channel = parse_module(module_token), parse_channel(channel_token)
        return DispatchOutcome.from_optional(
            self.device.get_load_current(module, channel), module=module, channel=channel
        )

    def control_channel(self, module_token: str, channel_token: str, state_token: str) -> DispatchOutcome:
        module, channel = parse_module(module_token), parse_channel(channel_token)
        on = parse_state(state_token)
        ok = self.device.control_channel(module, channel, on)
        return DispatchOutcome.from_flag(ok, module=module, channel=channel, state="ON" if on else "OFF")

    # System-wide reads.

    def print_device_info(self) -> DispatchOutcome:
        info = self.device.device_info()
        if info is None:
            return DispatchOutcome.unavailable(self.device.last_error)
        return DispatchOutcome.success(info)

    def system_status(self) -> DispatchOutcome:
        return DispatchOutcome.success(self.device.get_system_status())

    # Coils.

    def read_coil(self, address_token: str) -> DispatchOutcome:
        address = require_integer(address_token, BASE_AUTO, 16)
        notes = ()
        if not self.device.set_slave_id(self.options.slave_id):
            notes = (f"Failed to set slave ID: {self.device.last_error}",)
        value = self.device.read_coil(address)
        if value is None:
            return DispatchOutcome.unavailable(self.device.last_error, notes=notes, address=address)
        return DispatchOutcome.success(value, notes=notes, address=address)

    def write_coil(self, address_token: str, state_token: str) -> DispatchOutcome:
        address = require_integer(address_token, BASE_AUTO, 16)
        state = parse_state(state_token)
        ok = self.device.write_coil(address, state)
        return DispatchOutcome.from_flag(ok, self.device.last_error, address=address, state=state)
