"""Tests against the system CoreFoundation framework (macOS only)."""

from __future__ import annotations

import os
import pathlib
import plistlib
import sys

import pytest

import cfplist

pytestmark = pytest.mark.skipif(
    sys.platform != "darwin",
    reason="CoreFoundation is only available on macOS",
)


def _open_descriptors() -> int:
    return len(os.listdir("/dev/fd"))


def test_round_trip_through_the_framework(tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"
    value = {"a": "b", "list": ["x", "y"], "flag": True, "nested": {"off": False}}

    assert cfplist.write_plist(value, target) is True

    assert cfplist.read_plist(target) == value
    with target.open("rb") as fp:
        assert plistlib.load(fp) == value


def test_framework_rejects_array_roots(tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"
    target.write_bytes(plistlib.dumps(["x"], fmt=plistlib.FMT_XML))

    with pytest.raises(cfplist.SchemaError):
        cfplist.read_plist(target)


def test_framework_reports_parse_errors(tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"
    target.write_text("<plist><dict><key>a</key>", encoding="utf-8")

    with pytest.raises(cfplist.ParseError):
        cfplist.read_plist(target)


def test_framework_stores_numbers_as_strings(tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"

    cfplist.write_plist({"n": 42}, target)

    assert cfplist.read_plist(target) == {"n": "42"}


def test_no_descriptors_leak(tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"
    cfplist.write_plist({"warm": "up"}, target)
    cfplist.read_plist(target)
    before = _open_descriptors()

    for _ in range(20):
        cfplist.write_plist({"a": ["b"]}, target)
        cfplist.read_plist(target)
    with pytest.raises(cfplist.SchemaError):
        target.write_bytes(plistlib.dumps("text", fmt=plistlib.FMT_XML))
        cfplist.read_plist(target)

    assert _open_descriptors() == before
