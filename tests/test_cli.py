"""Tests for macfilter/cli.py"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from macfilter.cli import _format_lists, build_parser, main
from macfilter.exceptions import FirewallNotFoundError
from macfilter.models import AppliedConfig, FilterMode
from macfilter.store import ListStore


def _run(data_dir: Path, *argv: str) -> None:
    main(["--data-dir", str(data_dir), *argv])


class TestBuildParser:
    """Tests for build_parser function."""

    def test_short_flags(self):
        args = build_parser().parse_args(["-i", "eth0", "-v", "10", "-m", "whitelist", "-p"])

        assert args.interface == "eth0"
        assert args.vlan == 10
        assert args.mode == "whitelist"
        assert args.apply is True
        assert args.verify is False

    def test_multiple_macs(self):
        args = build_parser().parse_args(["-m", "blacklist", "-a", "aa:bb:cc:dd:ee:01", "aa:bb:cc:dd:ee:02"])

        assert args.add == ["aa:bb:cc:dd:ee:01", "aa:bb:cc:dd:ee:02"]

    def test_file_is_repeatable(self):
        args = build_parser().parse_args(["-m", "whitelist", "-f", "a.txt", "--file", "b.txt"])

        assert args.file == ["a.txt", "b.txt"]

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("MACFILTER_DATA_DIR", raising=False)
        args = build_parser().parse_args([])

        assert args.data_dir == Path("/var/lib/macfilter")
        assert args.vlan is None
        assert args.existing is False
        assert args.list is False

    def test_data_dir_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MACFILTER_DATA_DIR", str(tmp_path))

        assert build_parser().parse_args([]).data_dir == tmp_path

    @pytest.mark.parametrize("vlan", ["0", "4095", "ten"])
    def test_invalid_vlan(self, vlan):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-v", vlan])

    def test_invalid_mode(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-m", "greylist"])

    def test_apply_and_verify_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--apply", "--verify"])


class TestFormatLists:
    """Tests for _format_lists function."""

    def test_contains_both_lists(self):
        output = _format_lists({FilterMode.WHITELIST: ["AA:BB:CC:DD:EE:01"], FilterMode.BLACKLIST: []})

        assert "Whitelist:" in output
        assert "AA:BB:CC:DD:EE:01" in output
        assert "Blacklist:" in output
        assert "(empty)" in output


class TestMainListOperations:
    """Tests for add/remove/file/list through main()."""

    def test_no_action_prints_help_and_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            _run(tmp_path)

        assert exc_info.value.code == 1
        assert "usage:" in capsys.readouterr().out

    def test_add_and_list(self, tmp_path, capsys):
        _run(tmp_path, "-m", "whitelist", "-a", "aa-bb-cc-dd-ee-01", "bogus", "-l")

        out = capsys.readouterr().out
        assert "AA:BB:CC:DD:EE:01" in out
        assert ListStore(tmp_path).list(FilterMode.WHITELIST) == ["AA:BB:CC:DD:EE:01"]

    def test_add_without_mode_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            _run(tmp_path, "-a", "aa:bb:cc:dd:ee:01")

        assert exc_info.value.code == 1
        assert not (tmp_path / "whitelist.txt").exists()

    def test_remove(self, tmp_path):
        ListStore(tmp_path).add(FilterMode.BLACKLIST, "aa:bb:cc:dd:ee:01")

        _run(tmp_path, "-m", "blacklist", "-r", "AA-BB-CC-DD-EE-01", "AA:BB:CC:DD:EE:99")

        assert ListStore(tmp_path).list(FilterMode.BLACKLIST) == []

    def test_missing_import_file_is_skipped(self, tmp_path):
        """Test a missing --file is reported and the other operations still run."""
        source = tmp_path / "good.txt"
        source.write_text("aa:bb:cc:dd:ee:02\n")

        _run(tmp_path, "-m", "blacklist", "-f", str(tmp_path / "missing.txt"), "-f", str(source))

        assert ListStore(tmp_path).list(FilterMode.BLACKLIST) == ["AA:BB:CC:DD:EE:02"]


class TestMainRules:
    """Tests for --apply / --verify / --existing through main()."""

    def test_verify_prints_and_saves_nothing(self, tmp_path, capsys):
        ListStore(tmp_path).add(FilterMode.WHITELIST, "aa:bb:cc:dd:ee:01")

        with patch("macfilter.projector.IptablesFirewall") as ipt:
            _run(tmp_path, "-i", "eth0", "-v", "10", "-m", "whitelist", "-V")

        ipt.assert_not_called()
        out = capsys.readouterr().out.splitlines()
        assert out == [
            "iptables -D FORWARD -i eth0.10 -j ACCEPT",
            "iptables -D FORWARD -i eth0.10 -j DROP",
            "iptables -I FORWARD -i eth0.10 -m mac --mac-source AA:BB:CC:DD:EE:01 -j ACCEPT",
            "iptables -A FORWARD -i eth0.10 -j DROP",
        ]
        assert ListStore(tmp_path).load_config() is None

    def test_apply_runs_rules_and_saves_config(self, tmp_path, fake_firewall):
        firewall = fake_firewall()
        ListStore(tmp_path).add(FilterMode.BLACKLIST, "aa:bb:cc:dd:ee:01")

        with patch("macfilter.projector.IptablesFirewall", return_value=firewall):
            _run(tmp_path, "-i", "eth0", "-m", "blacklist", "--apply")

        assert firewall.installed == [
            ("FORWARD", "eth0", "AA:BB:CC:DD:EE:01", "DROP"),
            ("FORWARD", "eth0", None, "ACCEPT"),
        ]
        assert ListStore(tmp_path).load_config() == AppliedConfig(interface="eth0", mode=FilterMode.BLACKLIST)
        assert (tmp_path / "whitelist.txt").exists()

    def test_apply_without_interface_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            _run(tmp_path, "-m", "whitelist", "--apply")

        assert exc_info.value.code == 1

    def test_existing_reuses_saved_config(self, tmp_path, fake_firewall):
        firewall = fake_firewall()
        store = ListStore(tmp_path)
        store.add(FilterMode.WHITELIST, "aa:bb:cc:dd:ee:01")
        store.save_config(AppliedConfig(interface="eth0", vlan=10, mode=FilterMode.WHITELIST))

        with patch("macfilter.projector.IptablesFirewall", return_value=firewall):
            _run(tmp_path, "--existing")

        assert {c.in_interface for c in firewall.calls} == {"eth0.10"}
        assert ("FORWARD", "eth0.10", None, "DROP") in firewall.installed

    def test_existing_flags_override_saved_values(self, tmp_path, capsys):
        ListStore(tmp_path).save_config(AppliedConfig(interface="eth0", vlan=10, mode=FilterMode.WHITELIST))

        _run(tmp_path, "--existing", "--verify", "-v", "20")

        assert "iptables -A FORWARD -i eth0.20 -j DROP" in capsys.readouterr().out

    def test_existing_without_saved_config_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            _run(tmp_path, "--existing")

        assert exc_info.value.code == 1

    def test_missing_iptables_exits(self, tmp_path):
        with patch("macfilter.projector.IptablesFirewall", side_effect=FirewallNotFoundError("iptables missing")):
            with pytest.raises(SystemExit) as exc_info:
                _run(tmp_path, "-i", "eth0", "-m", "whitelist", "-p")

        assert exc_info.value.code == 1
        assert ListStore(tmp_path).load_config() is None
