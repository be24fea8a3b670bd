"""
Unit tests for the simple_gdrive command line interface.

The service is built over the in-memory FakeDriveClient so each command
runs end to end without network access.
"""

from unittest.mock import patch

import pytest

from simple_gdrive import __main__ as cli
from simple_gdrive.errors import NotAuthenticatedError
from simple_gdrive.mime import MimeType
from simple_gdrive.path_cache import PathCache
from simple_gdrive.service import GoogleDriveService


@pytest.fixture
def cli_service(fake_client):
    service = GoogleDriveService(fake_client, PathCache())
    with (
        patch.object(cli.GoogleDriveService, "from_config", return_value=service),
        patch.object(cli, "setup_logging"),
    ):
        yield service


@pytest.fixture
def drive(fake_client):
    ids = {"A": fake_client.add_folder("A")}
    ids["B"] = fake_client.add_folder("B", parent=ids["A"])
    ids["a1"] = fake_client.add("a1.txt", parent=ids["A"], content=b"alpha")
    ids["b1"] = fake_client.add("b1.txt", parent=ids["B"])
    ids["doc"] = fake_client.add("Plan", MimeType.GOOGLE_DOCUMENT.value, parent=ids["A"])
    return ids


def test_no_command_prints_usage(capsys):
    assert cli.main([]) == 1
    assert "Usage: simple-gdrive" in capsys.readouterr().out


def test_ls(cli_service, drive, capsys):
    assert cli.main(["ls", "A"]) == 0
    out = capsys.readouterr().out
    assert "B/" in out
    assert "a1.txt" in out
    assert "b1.txt" not in out


def test_ls_deep_files_only(cli_service, drive, capsys):
    assert cli.main(["ls", "A", "--deep", "--files-only"]) == 0
    out = capsys.readouterr().out
    assert "A/a1.txt" in out
    assert "A/B/b1.txt" in out
    assert "B/" not in out.replace("A/B/b1.txt", "")


def test_root_folder_option(cli_service, drive):
    assert cli.main(["--root-folder", drive["A"], "ls", "A"]) == 0
    config = cli.GoogleDriveService.from_config.call_args.args[0]
    assert config.gdrive.root_folder_id == drive["A"]


def test_ls_missing_folder(cli_service, drive, capsys):
    assert cli.main(["ls", "nope"]) == 1
    assert "[ERROR] Folder not found: nope" in capsys.readouterr().out


def test_info(cli_service, drive, capsys):
    assert cli.main(["info", "A/B/b1.txt"]) == 0
    out = capsys.readouterr().out
    assert f"Id:        {drive['b1']}" in out
    assert "Full name: A/B/b1.txt" in out


def test_mkdir_and_repeat(cli_service, fake_client, capsys):
    assert cli.main(["mkdir", "X/Y"]) == 0
    assert "[OK] Created X/Y" in capsys.readouterr().out

    assert cli.main(["mkdir", "X/Y"]) == 1
    assert "already exists" in capsys.readouterr().out


def test_rm(cli_service, fake_client, drive, capsys):
    assert cli.main(["rm", "A/a1.txt"]) == 0
    assert drive["a1"] not in fake_client.files
    assert cli.main(["rm", "A/a1.txt"]) == 1


def test_upload_and_download(cli_service, fake_client, tmp_path, capsys):
    local = tmp_path / "up.txt"
    local.write_bytes(b"payload")
    assert cli.main(["upload", str(local), "Inbox/up.txt"]) == 0

    target = tmp_path / "down.txt"
    assert cli.main(["download", "Inbox/up.txt", str(target)]) == 0
    assert target.read_bytes() == b"payload"


def test_upload_missing_local(cli_service, tmp_path, capsys):
    assert cli.main(["upload", str(tmp_path / "none"), "x"]) == 1
    assert "Local file not found" in capsys.readouterr().out


def test_export(cli_service, drive, tmp_path, capsys):
    target = tmp_path / "plan.pdf"
    assert cli.main(["export", "A/Plan", str(target), "--mime-type", MimeType.PDF.value]) == 0
    assert target.read_bytes() == f"Plan as {MimeType.PDF.value}".encode()


def test_export_plain_file_is_error(cli_service, drive, tmp_path, capsys):
    assert cli.main(["export", "A/a1.txt", str(tmp_path / "x")]) == 1
    assert "cannot be exported" in capsys.readouterr().out


def test_not_authenticated(fake_client, capsys):
    service = GoogleDriveService(fake_client, PathCache())
    with (
        patch.object(cli.GoogleDriveService, "from_config", return_value=service),
        patch.object(cli, "setup_logging"),
        patch.object(fake_client, "connect", side_effect=NotAuthenticatedError()),
    ):
        assert cli.main(["ls", "A"]) == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_missing_config_file(capsys):
    assert cli.main(["--config", "/nonexistent.ini", "ls", "A"]) == 1
    assert "Configuration error" in capsys.readouterr().out
