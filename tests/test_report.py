from caparoc_options import Action
from caparoc_registers import find_registers, get_register_info, list_all_registers
from caparoc_report import (
    ELEMENT_ACTIONS,
    HEADERS,
    DispatchOutcome,
    OutcomeStatus,
    report,
    section_header,
)


def test_every_action_has_a_header() -> None:
    assert set(HEADERS) == set(Action)


def test_section_header_echoes_scalar_address() -> None:
    assert section_header(Action.READ_UINT32, {"token": "0x0100"}) == (
        "=== Read UINT32 Register ===\nAddress: 0x0100"
    )
    assert section_header(Action.GET_CHANNEL_STATUS, {}) is None
    assert all(section_header(action) is None for action in ELEMENT_ACTIONS)


def test_outcome_constructors() -> None:
    assert DispatchOutcome.from_optional(None, module=2).status == OutcomeStatus.UNAVAILABLE
    assert DispatchOutcome.from_optional(0).status == OutcomeStatus.SUCCESS
    assert DispatchOutcome.from_flag(False, "channel lock").message == "channel lock"
    assert DispatchOutcome.error("bad").subject == {}


def test_report_uses_fixed_failed_lines() -> None:
    assert report(Action.READ_UINT16, DispatchOutcome.unavailable()) == "Failed to read register"
    assert report(Action.RESET_APPLICATION_PARAMS_POWER_AND_CB, DispatchOutcome.from_flag(True)) == "SUCCESS"
    assert report(Action.GET_NUM_CONNECTED_MODULES, DispatchOutcome.success(0)) == "Connected modules: 0"


def test_report_error_lines() -> None:
    assert report(Action.GET_LOAD_CURRENT, DispatchOutcome.error("boom")) == "Error: boom"
    assert report(Action.WRITE_UINT32, DispatchOutcome.error("boom")) == "  Error: boom"
    assert report(Action.UNLOCK_NOMINAL_CURRENT, DispatchOutcome.error("boom")) == "Error parsing arguments: boom"


def test_report_write_addresses_are_four_hex_digits() -> None:
    outcome = DispatchOutcome.success(True, address=0xAB, word=7)
    assert report(Action.WRITE_UINT16, outcome) == "  0x00AB = 7 (SUCCESS)"


def test_register_catalogue() -> None:
    assert "Name: GLOBAL_NOMINAL_CURRENT_LOCK" in get_register_info(0xC001)
    assert get_register_info(0x7777) == "Register 0x7777 not found"
    assert [reg.address for reg in find_registers("PRODUCT_NAME_QUINT")] == [0x1110]
    assert len(find_registers("Voltage")) == 1
    listing = list_all_registers()
    assert listing.splitlines()[0].startswith("  [0x0010] WO | RESET_APP_PARAMS_POWER_AND_CB")
    assert listing.splitlines()[-1].startswith("Total registers: ")


def test_read_coil_shows_raw_boolean() -> None:
    assert report(Action.READ_COIL, DispatchOutcome.success(True, address=1)) == "Coil 0x0001: ON (true)"
    assert report(Action.READ_COIL, DispatchOutcome.success(False, address=2)) == "Coil 0x0002: OFF (false)"
