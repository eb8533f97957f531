"""Tests for loading plain config files."""

import logging
from unittest.mock import patch

import pytest

from presence.loaders.static_loader import load_config


@pytest.mark.asyncio
async def test_well_formed_file_yields_message(write_config):
    config = write_config({"details": "Editing notes", "state": "Workspace: presence", "large_image": "vim"})

    message = await load_config(config)

    assert message is not None
    assert message.model_dump() == {"details": "Editing notes", "state": "Workspace: presence", "large_image": "vim"}


@pytest.mark.asyncio
async def test_malformed_file_logs_reason_and_raw_text(write_config, caplog):
    config = write_config('{"details": "Editing notes",')
    caplog.set_level(logging.ERROR, logger="presence.loaders.static_loader")

    message = await load_config(config)

    assert message is None
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "Error while parsing config file" in errors[0].getMessage()
    assert '{"details": "Editing notes",' in errors[0].getMessage()


@pytest.mark.asyncio
async def test_non_object_document_is_rejected(write_config, caplog):
    config = write_config("[1, 2, 3]")

    assert await load_config(config) is None
    assert any("Error while parsing config file" in m for m in caplog.messages)


@pytest.mark.asyncio
async def test_missing_file_logs_read_error(tmp_path, caplog):
    caplog.set_level(logging.ERROR)

    message = await load_config(tmp_path / "missing.json")

    assert message is None
    assert any("Error while reading config file" in m for m in caplog.messages)


@pytest.mark.asyncio
async def test_undecodable_file_logs_read_error(tmp_path, caplog):
    config = tmp_path / "config.json"
    config.write_bytes(b"\xff\xfe\x00garbage")

    assert await load_config(config) is None
    assert any("Error while reading config file" in m for m in caplog.messages)


@pytest.mark.asyncio
async def test_permission_error_is_reported(write_config, caplog):
    config = write_config({"state": "idle"})

    with patch("pathlib.Path.read_text", side_effect=PermissionError("Permission denied")):
        assert await load_config(config) is None

    assert any("Permission denied" in m for m in caplog.messages)
