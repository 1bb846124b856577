"""Tests for zonekit.commands module."""

from __future__ import annotations

import shlex

from zonekit import commands


class TestZoneCommands:
    def test_zone_lifecycle_argv(self):
        assert commands.zonecfg_apply("demo", "/tmp/x/demo.cfg") == ["/usr/sbin/zonecfg", "-z", "demo", "-f", "/tmp/x/demo.cfg"]
        assert commands.zoneadm_clone("demo", "/tmp/x/p.xml", "golden") == [
            "/usr/sbin/zoneadm", "-z", "demo", "clone", "-c", "/tmp/x/p.xml", "golden",
        ]
        assert commands.zoneadm_boot("demo") == ["/usr/sbin/zoneadm", "-z", "demo", "boot"]
        assert commands.zoneadm_halt("demo") == ["/usr/sbin/zoneadm", "-z", "demo", "halt"]
        assert commands.zoneadm_uninstall("demo") == ["/usr/sbin/zoneadm", "-z", "demo", "uninstall", "-F"]
        assert commands.zonecfg_delete("demo") == ["/usr/sbin/zonecfg", "-z", "demo", "delete", "-F"]

    def test_show_addr(self):
        assert commands.show_addr("demo") == ["/usr/sbin/zlogin", "demo", "ipadm", "show-addr"]

    def test_hostile_values_stay_single_arguments(self):
        argv = commands.zonecfg_apply("demo", "/tmp/a b; rm -rf /")
        assert shlex.split(shlex.join(argv)) == argv


class TestNatCommands:
    def test_rule_text(self):
        assert commands.nat_rule("net0", 40022, "10.0.0.5", 22) == "rdr net0 0.0.0.0/0 port 40022 -> 10.0.0.5 port 22\n"

    def test_install_and_remove_read_stdin(self):
        assert commands.nat_install() == ["/usr/sbin/ipnat", "-f", "-"]
        assert commands.nat_remove() == ["/usr/sbin/ipnat", "-r", "-f", "-"]
        assert commands.nat_list() == ["/usr/sbin/ipnat", "-l"]


def test_staging_commands():
    assert commands.mkdir_p("/systems/zones/kitchen_tmp") == ["mkdir", "-p", "/systems/zones/kitchen_tmp"]
    assert commands.mktemp_dir("/systems/zones/kitchen_tmp") == ["mktemp", "-d", "-p", "/systems/zones/kitchen_tmp"]
    assert commands.remove_tree("/systems/zones/kitchen_tmp/tmp.1") == ["rm", "-rf", "/systems/zones/kitchen_tmp/tmp.1"]
