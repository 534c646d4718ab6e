import json

import pytest

from syzlogparser.core.config import Config, host_arch, load_config
from syzlogparser.core.errors import ConfigError
from syzlogparser.core.models import TargetDescriptor


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SYZLOGPARSER_OS", "SYZLOGPARSER_ARCH", "SYZLOGPARSER_DEBUG"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = load_config()
    assert cfg.target_os == "linux"
    assert cfg.target_arch == host_arch()
    assert cfg.suppressions == [] and cfg.ignores == [] and cfg.interests == []
    assert not cfg.debug


def test_environment(monkeypatch):
    monkeypatch.setenv("SYZLOGPARSER_OS", "freebsd")
    monkeypatch.setenv("SYZLOGPARSER_ARCH", "arm64")
    monkeypatch.setenv("SYZLOGPARSER_DEBUG", "1")
    cfg = load_config()
    assert cfg.resolve_target() == TargetDescriptor(os="freebsd", vm_arch="arm64")
    assert cfg.debug


def test_overrides_win_and_none_is_dropped(monkeypatch):
    monkeypatch.setenv("SYZLOGPARSER_OS", "freebsd")
    cfg = load_config(target_os="netbsd", target_arch=None)
    assert cfg.target_os == "netbsd"
    assert cfg.target_arch == host_arch()


def test_manager_config_file(tmp_path):
    path = tmp_path / "manager.cfg"
    path.write_text(json.dumps({
        "target": "linux/arm64/arm",
        "http": "127.0.0.1:56741",
        "workdir": "/tmp/work",
        "suppressions": ["some known bug"],
        "ignores": ["WARNING in foo"],
    }))
    cfg = load_config(path, target_os="freebsd", target_arch="amd64")
    assert cfg.target_parts() == ("linux", "arm64", "arm")
    assert cfg.resolve_target() == TargetDescriptor(os="linux", vm_arch="arm64", arch="arm")
    assert cfg.suppressions == ["some known bug"]
    assert cfg.ignores == ["WARNING in foo"]


def test_target_without_arch_is_not_split():
    cfg = Config(target="linux", target_os="freebsd", target_arch="amd64")
    assert cfg.target_parts() == ("freebsd", "amd64", "amd64")


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"suppressions": "not a list"}'])
def test_bad_settings_file(tmp_path, content):
    path = tmp_path / "bad.cfg"
    path.write_text(content)
    with pytest.raises(ConfigError):
        load_config(path)


def test_missing_settings_file(tmp_path):
    with pytest.raises(ConfigError) as exc:
        load_config(tmp_path / "nope.cfg")
    assert "failed to read" in str(exc.value)
