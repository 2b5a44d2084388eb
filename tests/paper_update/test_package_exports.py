"""Tests for the lazily populated package facade."""

from __future__ import annotations

import pytest

import PaperUpdate
from PaperUpdate.install import InstallPipeline
from PaperUpdate.updater import Updater


def test_exports_resolve_to_implementations():
    assert PaperUpdate.Updater is Updater
    assert PaperUpdate.InstallPipeline is InstallPipeline
    assert "select_version" in dir(PaperUpdate)


def test_unknown_attribute_raises():
    with pytest.raises(AttributeError):
        PaperUpdate.does_not_exist  # noqa: B018
