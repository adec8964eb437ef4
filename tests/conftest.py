"""Shared fixtures wiring the codec to the in-process CoreFoundation double."""

from __future__ import annotations

import pytest
from fake_corefoundation import FakeCoreFoundation

from _cfplist_core.codec import PlistCodec
from _cfplist_core.registry import BindingRegistry


@pytest.fixture
def fake_cf() -> FakeCoreFoundation:
    return FakeCoreFoundation()


@pytest.fixture
def registry(fake_cf: FakeCoreFoundation) -> BindingRegistry:
    return BindingRegistry(fake_cf)


@pytest.fixture
def codec(registry: BindingRegistry) -> PlistCodec:
    return PlistCodec(registry)

