import logging
import os
from pathlib import Path

from sfgateway.env_loader import load_env_files


def test_load_env_files_loads_first_existing(tmp_path, monkeypatch):
    """load_env_files should call load_dotenv on the first existing candidate."""
    env1 = tmp_path / ".env"
    env2 = tmp_path / ".dotenv"
    env1.write_text("SALESFORCE_CLIENT_ID=dummy\n")
    env2.write_text("SHOULD_NOT_BE_USED=1\n")

    calls = []
    monkeypatch.setattr(
        "sfgateway.env_loader.load_dotenv", lambda path: calls.append(Path(path)) or True
    )

    loaded = load_env_files(candidates=[env1, env2], quiet=True)

    assert calls == [env1]
    assert loaded == env1


def test_load_env_files_no_existing_files(tmp_path, monkeypatch):
    """If no candidate exists, load_dotenv should never be called."""
    calls = []
    monkeypatch.setattr(
        "sfgateway.env_loader.load_dotenv", lambda path: calls.append(Path(path)) or True
    )

    assert load_env_files(candidates=[tmp_path / "missing.env"], quiet=True) is None
    assert calls == []


def test_load_env_files_defaults_to_cwd(tmp_path, monkeypatch):
    # conftest chdirs into tmp_path
    (tmp_path / ".dotenv").write_text("SALESFORCE_USERNAME=u@x.com\n")
    calls = []
    monkeypatch.setattr(
        "sfgateway.env_loader.load_dotenv", lambda path: calls.append(Path(path)) or True
    )

    load_env_files()

    assert calls == [tmp_path / ".dotenv"]


def test_real_dotenv_keeps_existing_variables(tmp_path, monkeypatch):
    env = tmp_path / ".env"
    env.write_text("SALESFORCE_USERNAME=from-file\nSALESFORCE_API_VERSION=v60.0\n")
    monkeypatch.setenv("SALESFORCE_USERNAME", "from-process")
    monkeypatch.delenv("SALESFORCE_API_VERSION", raising=False)

    load_env_files(candidates=[env], quiet=True)

    assert os.environ["SALESFORCE_USERNAME"] == "from-process"
    assert os.environ["SALESFORCE_API_VERSION"] == "v60.0"
    monkeypatch.delenv("SALESFORCE_API_VERSION")


def test_loaded_setting_names_are_logged_without_values(tmp_path, caplog):
    env = tmp_path / ".env"
    env.write_text("SALESFORCE_CLIENT_SECRET=s3cret\nSF_USERNAME=u@x.com\nOTHER=1\n")
    caplog.set_level(logging.DEBUG, logger="sfgateway.env_loader")

    load_env_files(candidates=[env])

    assert "SALESFORCE_CLIENT_SECRET, SF_USERNAME" in caplog.text
    assert "s3cret" not in caplog.text
    assert "OTHER" not in caplog.text
    for name in ("SALESFORCE_CLIENT_SECRET", "SF_USERNAME", "OTHER"):
        os.environ.pop(name, None)
