"""Tests for the command-line save path in scripts/dictate.py."""

import importlib.util
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from medscribe.core.exceptions import ObjectExistsError
from medscribe.services.storage import StorageGateway
from medscribe.services.storage.documents import TEXT_CONTENT_TYPE

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "dictate.py"


@pytest.fixture
def dictate():
    spec = importlib.util.spec_from_file_location("dictate_cli", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def gateway(dictate, monkeypatch):
    mock = AsyncMock(spec=StorageGateway)
    monkeypatch.setattr(dictate, "StorageGateway", lambda settings: mock)
    return mock


class TestSave:
    """Uploading generated notes."""

    async def test_new_name_is_created(self, dictate, gateway, settings, capsys):
        await dictate._save(settings, "S: cough", "visit")

        gateway.upload.assert_awaited_once_with("visit.txt", b"S: cough", TEXT_CONTENT_TYPE, upsert=False)
        gateway.aclose.assert_awaited_once()
        assert "SAVED visit.txt" in capsys.readouterr().out

    async def test_existing_name_saves_a_copy(self, dictate, gateway, settings, capsys):
        gateway.upload.side_effect = [ObjectExistsError("visit.txt"), None]

        await dictate._save(settings, "S: cough", "visit")

        uploaded = [call.args[0] for call in gateway.upload.await_args_list]
        assert uploaded == ["visit.txt", "visit_copy.txt"]
        out = capsys.readouterr().out
        assert "visit.txt already exists" in out
        assert "SAVED visit_copy.txt" in out
        gateway.aclose.assert_awaited_once()
