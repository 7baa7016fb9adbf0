import asyncio
from pathlib import Path

import pytest

from testbed_orchestrator.cloud.memory_provider import InMemoryProvider
from testbed_orchestrator.configs.loader import (
    get_public_key_body,
    load_settings,
    load_ssh_public_key,
    settings_from_dict,
)
from testbed_orchestrator.errors import ConfigurationError
from testbed_orchestrator.testbed import Testbed


def _write_config(path: Path, key_path: Path, regions: str = '["us-east", "eu-west"]') -> Path:
    path.write_text(
        f"regions = {regions}\n"
        f'ssh_private_key_file = "{key_path.as_posix()}"\n'
        "readiness_interval = 2.5\n"
        "max_wait = 30\n"
        "\n"
        "[repository]\n"
        'url = "https://example.com/testbed.git"\n'
        'branch = "experiments"\n'
    )
    return path


def test_load_settings_from_toml(tmp_path: Path, key_pair):
    private_path, _ = key_pair
    config = _write_config(tmp_path / "testbed.toml", private_path)

    settings = load_settings(config)

    assert settings.regions == ["us-east", "eu-west"]
    assert settings.number_of_regions == 2
    assert settings.repository.url == "https://example.com/testbed.git"
    assert settings.repository.branch == "experiments"
    assert settings.ssh_private_key_file == private_path
    assert settings.public_key_path == private_path.with_name(private_path.name + ".pub")
    assert settings.readiness_interval == 2.5
    assert settings.stop_poll_interval == 1.0
    assert settings.max_wait == 30


def test_load_settings_missing_file_raises(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        load_settings(tmp_path / "missing.toml")


def test_load_settings_invalid_toml_raises(tmp_path: Path):
    config = tmp_path / "testbed.toml"
    config.write_text("regions = [\n")

    with pytest.raises(ConfigurationError):
        load_settings(config)


@pytest.mark.parametrize("regions", ["[]", '["A", "A"]'])
def test_load_settings_rejects_bad_regions(tmp_path: Path, key_pair, regions):
    private_path, _ = key_pair
    config = _write_config(tmp_path / "testbed.toml", private_path, regions=regions)

    with pytest.raises(ConfigurationError):
        load_settings(config)


def test_repository_branch_defaults_to_main(key_pair):
    private_path, _ = key_pair
    settings = settings_from_dict({
        "regions": ["A"],
        "repository": {"url": "https://example.com/testbed.git"},
        "ssh_private_key_file": str(private_path),
    })

    assert settings.repository.branch == "main"


def test_load_public_key_from_pub_file(make_settings, key_pair):
    _, public_key = key_pair

    assert load_ssh_public_key(make_settings()) == public_key


def test_public_key_derived_from_private_key(make_settings, key_pair_factory):
    private_path, public_key = key_pair_factory(name="derived", with_public=False)
    settings = make_settings(ssh_private_key_file=private_path)

    assert load_ssh_public_key(settings) == public_key


def test_explicit_public_key_file_must_exist(make_settings, tmp_path: Path):
    settings = make_settings(ssh_public_key_file=tmp_path / "nope.pub")

    with pytest.raises(ConfigurationError):
        load_ssh_public_key(settings)


def test_malformed_public_key_raises(make_settings, tmp_path: Path):
    public_path = tmp_path / "broken.pub"
    public_path.write_text("not a key")
    settings = make_settings(ssh_public_key_file=public_path)

    with pytest.raises(ConfigurationError):
        load_ssh_public_key(settings)


def test_malformed_private_key_raises(make_settings, tmp_path: Path):
    private_path = tmp_path / "garbage"
    private_path.write_text("-----BEGIN NOTHING-----\n")
    settings = make_settings(ssh_private_key_file=private_path)

    with pytest.raises(ConfigurationError):
        load_ssh_public_key(settings)


def test_missing_private_key_raises(make_settings, tmp_path: Path):
    settings = make_settings(ssh_private_key_file=tmp_path / "missing")

    with pytest.raises(ConfigurationError):
        load_ssh_public_key(settings)


def test_testbed_create_fails_before_registering_bad_key(make_settings, tmp_path: Path):
    settings = make_settings(ssh_private_key_file=tmp_path / "missing")
    client = InMemoryProvider(settings.regions)

    with pytest.raises(ConfigurationError):
        asyncio.run(Testbed.create(settings, client))

    assert client.public_keys == []
    assert client.list_calls == 0


def test_missing_private_key_raises_even_with_public_key(make_settings, key_pair, tmp_path: Path):
    private_path, _ = key_pair
    public_path = private_path.with_name(private_path.name + ".pub")
    settings = make_settings(ssh_private_key_file=tmp_path / "gone", ssh_public_key_file=public_path)
    client = InMemoryProvider(settings.regions)

    with pytest.raises(ConfigurationError):
        load_ssh_public_key(settings)
    with pytest.raises(ConfigurationError):
        asyncio.run(Testbed.create(settings, client))
    assert client.public_keys == []


def test_public_key_of_another_pair_raises(make_settings, key_pair_factory):
    other_private, _ = key_pair_factory(name="other")
    settings = make_settings(ssh_public_key_file=other_private.with_name("other.pub"))

    with pytest.raises(ConfigurationError, match="does not match"):
        load_ssh_public_key(settings)


def test_get_public_key_body_derives_openssh_key(key_pair):
    private_path, public_key = key_pair

    assert get_public_key_body(private_path) == public_key
