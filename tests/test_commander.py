import caparoc_commander


def _patch_connection(monkeypatch, device, seen=None):
    def fake_create_connection(ip_address, port, timeout, slave_id):
        if seen is not None:
            seen.append((ip_address, port, timeout, slave_id))
        return device

    monkeypatch.setattr(caparoc_commander, "create_connection", fake_create_connection)


def test_main_runs_queue_and_returns_zero(monkeypatch, capsys, device) -> None:
    seen = []
    _patch_connection(monkeypatch, device, seen)
    rc = caparoc_commander.main([
        "-i", "10.0.0.7", "-p", "1502", "-t", "1.5",
        "--list", "--write-uint16", "0x10", "5", "--write-uint16", "0x20", "abc",
    ])
    out = capsys.readouterr().out
    assert rc == 0
    assert seen == [("10.0.0.7", 1502, 1.5, 1)]
    assert out.index("=== All Registers ===") < out.index("=== Write UINT16 Registers ===")
    assert "  0x0010 = 5 (SUCCESS)" in out
    assert "  Error: invalid base-10 number: 'abc'" in out
    assert device.closed


def test_main_returns_zero_when_actions_fail(monkeypatch, capsys, device) -> None:
    _patch_connection(monkeypatch, device)
    rc = caparoc_commander.main(["--read-uint16", "0x0010", "--product-name-quint"])
    out = capsys.readouterr().out
    assert rc == 0
    assert "Failed to read register" in out
    assert "Failed to read product name" in out


def test_main_connection_failure_is_fatal(monkeypatch, capsys) -> None:
    def refuse(ip_address, port, timeout, slave_id):
        raise ConnectionError(f"Failed to connect to device: timed out\n\nat {ip_address}:{port}")

    monkeypatch.setattr(caparoc_commander, "create_connection", refuse)
    rc = caparoc_commander.main(["--list"])
    captured = capsys.readouterr()
    assert rc == 1
    assert "Error: Failed to connect to device: timed out" in captured.err
    assert "All Registers" not in captured.out


def test_main_debug_dumps_options(monkeypatch, capsys, device) -> None:
    _patch_connection(monkeypatch, device)
    rc = caparoc_commander.main(["-d", "--get-load-current", "1", "2"])
    out = capsys.readouterr().out
    assert rc == 0
    assert "Connecting to 192.168.1.2:502" in out
    assert "  - GET_LOAD_CURRENT" in out
    assert "  - module: 1, channel: 2" in out
    assert "Connected successfully!" in out


def test_help_lists_action_flags() -> None:
    help_text = caparoc_commander.build_parser().format_help()
    assert "--write-uint16 ADDR VALUE" in help_text
    assert "--control-channel MODULE CHANNEL STATE" in help_text
    assert "--read-coil ADDR" in help_text


def test_help_describes_slave_id_for_every_request() -> None:
    help_text = " ".join(caparoc_commander.build_parser().format_help().split())
    assert "Modbus slave id used for every request (default: 1)" in help_text
