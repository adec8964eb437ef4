"""End-to-end tests for reading and writing property list files."""

from __future__ import annotations

import collections
import dataclasses
import pathlib
import plistlib
import textwrap
from typing import Any

import pytest
from fake_corefoundation import FakeCoreFoundation

import cfplist
from _cfplist_core.codec import PlistCodec
from _cfplist_core.errors import NotFoundError
from _cfplist_core.errors import TypeConversionError
from _cfplist_core.errors import TypeMismatchError


@dataclasses.dataclass
class _Target:
    name: str
    sources: list[str]
    enabled: bool = True


class _Settings:
    def to_dict(self) -> dict[str, Any]:
        return {"SWIFT_VERSION": "5.0", "ENABLE_BITCODE": False}


def test_write_then_read_round_trip(codec: PlistCodec, tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"

    assert codec.write({"a": "b", "list": ["x", "y"], "flag": True}, target) is True

    assert codec.read(target) == {"a": "b", "list": ["x", "y"], "flag": True}


def test_written_file_is_an_xml_plist(codec: PlistCodec, tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"
    value = {"name": "App", "files": ["a.m", "b.m"], "nested": {"on": True, "off": False}}

    codec.write(value, target)

    raw = target.read_bytes()
    assert raw.startswith(b"<?xml")
    assert b"<plist" in raw
    with target.open("rb") as fp:
        assert plistlib.load(fp) == value


def test_reads_files_written_elsewhere(codec: PlistCodec, tmp_path: pathlib.Path) -> None:
    target = tmp_path / "Info.plist"
    target.write_text(
        textwrap.dedent(
            """\
            <?xml version="1.0" encoding="UTF-8"?>
            <!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
            <plist version="1.0">
            <dict>
                <key>CFBundleName</key>
                <string>Demo</string>
                <key>UIRequiredDeviceCapabilities</key>
                <array>
                    <string>armv7</string>
                </array>
                <key>LSRequiresIPhoneOS</key>
                <true/>
                <key>Empty</key>
                <dict/>
            </dict>
            </plist>
            """,
        ),
        encoding="utf-8",
    )

    assert codec.read(target) == {
        "CFBundleName": "Demo",
        "UIRequiredDeviceCapabilities": ["armv7"],
        "LSRequiresIPhoneOS": True,
        "Empty": {},
    }


def test_non_mapping_root_is_rejected_before_touching_files(
    codec: PlistCodec,
    fake_cf: FakeCoreFoundation,
    tmp_path: pathlib.Path,
) -> None:
    target = tmp_path / "t.plist"

    with pytest.raises(TypeMismatchError, match="must be a mapping"):
        codec.write("not a hash", target)

    assert not target.exists()
    assert fake_cf.calls == []


@pytest.mark.parametrize("path", [42, None, b"t.plist"], ids=["int", "none", "bytes"])
def test_bad_path_types_are_rejected(
    codec: PlistCodec,
    fake_cf: FakeCoreFoundation,
    path: object,
) -> None:
    with pytest.raises(TypeMismatchError, match="path-like"):
        codec.write({"a": "b"}, path)
    with pytest.raises(TypeError):
        codec.read(path)

    assert fake_cf.calls == []


def test_missing_file_is_not_found(
    codec: PlistCodec,
    fake_cf: FakeCoreFoundation,
    tmp_path: pathlib.Path,
) -> None:
    with pytest.raises(NotFoundError, match="doesn't exist"):
        codec.read(tmp_path / "missing.plist")
    with pytest.raises(FileNotFoundError):
        codec.read(str(tmp_path / "missing.plist"))

    assert fake_cf.calls == []


def test_numbers_degrade_to_strings(codec: PlistCodec, tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"

    codec.write({"n": 42}, target)

    assert b"<string>42</string>" in target.read_bytes()
    assert codec.read(target) == {"n": "42"}


def test_numeric_nodes_in_files_are_unsupported(
    codec: PlistCodec,
    tmp_path: pathlib.Path,
) -> None:
    target = tmp_path / "t.plist"
    target.write_bytes(plistlib.dumps({"n": 42}, fmt=plistlib.FMT_XML))

    with pytest.raises(TypeConversionError, match="CFNumber"):
        codec.read(target)


def test_repeated_writes_are_identical(codec: PlistCodec, tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"
    value = {"b": ["1", "2"], "a": {"z": True, "y": "x"}}

    codec.write(value, target)
    first = target.read_bytes()
    codec.write(value, target)

    assert target.read_bytes() == first


def test_dataclasses_and_to_dict_objects_are_accepted(
    codec: PlistCodec,
    tmp_path: pathlib.Path,
) -> None:
    target = tmp_path / "t.plist"

    codec.write(_Target("App", ["main.swift"]), target)
    assert codec.read(target) == {"name": "App", "sources": ["main.swift"], "enabled": True}

    codec.write(_Settings(), str(target))
    assert codec.read(str(target)) == {"SWIFT_VERSION": "5.0", "ENABLE_BITCODE": False}


def test_any_mapping_is_accepted(codec: PlistCodec, tmp_path: pathlib.Path) -> None:
    target = tmp_path / "t.plist"
    value = collections.OrderedDict([("first", "1"), ("second", ["2"])])

    codec.write(value, target)

    assert codec.read(target) == {"first": "1", "second": ["2"]}


def test_dataclass_types_are_not_instances(codec: PlistCodec, tmp_path: pathlib.Path) -> None:
    with pytest.raises(TypeMismatchError):
        codec.write(_Target, tmp_path / "t.plist")


def test_public_api_validates_before_loading_the_framework(tmp_path: pathlib.Path) -> None:
    with pytest.raises(cfplist.TypeMismatchError):
        cfplist.write_plist("not a hash", tmp_path / "t.plist")
    with pytest.raises(cfplist.NotFoundError):
        cfplist.read_plist(tmp_path / "missing.plist")

    assert cfplist.default_codec() is cfplist.default_codec()
    assert not (tmp_path / "t.plist").exists()
