import os
from pathlib import Path
from unittest import mock

import aws_cdk as cdk
import pytest

from ec2withssh.schema import DEFAULT_USER_DATA_PATH, Ec2WithSshStackConfig

from .helpers import PUBLIC_KEY


def env_vars_all() -> dict[str, str]:
    return {
        "EC2_WITH_SSH_SOURCE_IP": "198.51.100.7/32",
        "EC2_WITH_SSH_INSTANCE_TYPE": "t3.large",
        "EC2_WITH_SSH_ROOT_VOLUME_SIZE_GIB": "64",
        "EC2_WITH_SSH_PUBLIC_KEY_MATERIAL": PUBLIC_KEY,
        "EC2_WITH_SSH_EXTRA_TAGS_STR": "Owner=platform;CostCentre=42",
    }


@pytest.fixture()
def mock_settings_env_vars_all():
    with mock.patch.dict(os.environ, env_vars_all()):
        yield 0


@pytest.fixture()
def mock_settings_env_vars_none():
    with mock.patch.dict(os.environ):
        for key in list(os.environ):
            if key.startswith("EC2_WITH_SSH_"):
                os.environ.pop(key)
        yield 0


def test_defaults():
    config = Ec2WithSshStackConfig(public_key_material=PUBLIC_KEY)
    assert config.ip_parameter_name == "myIp"
    assert config.instance_type == "t3.xlarge"
    assert config.ami_owner == "099720109477"
    assert config.root_device_name == "/dev/sda1"
    assert config.root_volume_size_gib == 125
    assert config.user_data_path == DEFAULT_USER_DATA_PATH
    assert config.validate_ip_format is True
    assert config.context == {}


def test_env_vars(mock_settings_env_vars_all):
    config = Ec2WithSshStackConfig.from_settings()
    assert config.context == {"myIp": "198.51.100.7/32"}
    assert config.instance_type == "t3.large"
    assert config.root_volume_size_gib == 64
    assert config.extra_tags == (("Owner", "platform"), ("CostCentre", "42"))


def test_kwargs_override_env_vars(mock_settings_env_vars_all):
    config = Ec2WithSshStackConfig.from_settings(
        instance_type="t3.micro", context={"myIp": "192.0.2.1/32"}
    )
    assert config.instance_type == "t3.micro"
    assert config.context == {"myIp": "192.0.2.1/32"}


def test_env_source_ip_follows_parameter_name(mock_settings_env_vars_all):
    config = Ec2WithSshStackConfig.from_settings(ip_parameter_name="IPV4")
    assert config.context == {"IPV4": "198.51.100.7/32"}


def test_from_context(mock_settings_env_vars_none):
    app = cdk.App(
        context={
            "myIp": "203.0.113.5/32",
            "instanceType": "t3.small",
            "keyPairMode": "reference",
            "keyPairName": "example-key",
        }
    )
    config = Ec2WithSshStackConfig.from_context(app)
    assert config.context == {"myIp": "203.0.113.5/32"}
    assert config.instance_type == "t3.small"
    assert config.key_pair_mode == "reference"
    assert config.key_pair_name == "example-key"


def test_from_context_wins_over_env(mock_settings_env_vars_all):
    app = cdk.App(context={"myIp": "203.0.113.5/32"})
    config = Ec2WithSshStackConfig.from_context(app)
    assert config.context == {"myIp": "203.0.113.5/32"}


def test_from_context_alternate_parameter_name(mock_settings_env_vars_none):
    app = cdk.App(context={"IPV4": "203.0.113.5/32", "publicKey": PUBLIC_KEY})
    config = Ec2WithSshStackConfig.from_context(app, ip_parameter_name="IPV4")
    assert config.context == {"IPV4": "203.0.113.5/32"}
    assert config.public_key_material == PUBLIC_KEY


def test_from_context_without_ip(mock_settings_env_vars_none):
    app = cdk.App(context={"publicKey": PUBLIC_KEY})
    config = Ec2WithSshStackConfig.from_context(app)
    assert config.context == {}


def test_inline_mode_requires_public_key():
    with pytest.raises(ValueError, match="public_key_material"):
        Ec2WithSshStackConfig(key_pair_mode="inline")


def test_reference_mode_requires_key_name():
    with pytest.raises(ValueError, match="key_pair_name"):
        Ec2WithSshStackConfig(key_pair_mode="reference")


def test_unknown_instance_type_rejected():
    with pytest.raises(ValueError):
        Ec2WithSshStackConfig(public_key_material=PUBLIC_KEY, instance_type="p4d.24xlarge")


def test_malformed_tags_rejected(mock_settings_env_vars_none):
    with mock.patch.dict(
        os.environ,
        {
            "EC2_WITH_SSH_PUBLIC_KEY_MATERIAL": PUBLIC_KEY,
            "EC2_WITH_SSH_EXTRA_TAGS_STR": "Owner",
        },
    ):
        with pytest.raises(ValueError, match="key1=value1"):
            Ec2WithSshStackConfig.from_settings()


def test_user_data_path_from_env(mock_settings_env_vars_none, tmp_path: Path):
    script = tmp_path / "boot.sh"
    with mock.patch.dict(
        os.environ,
        {
            "EC2_WITH_SSH_PUBLIC_KEY_MATERIAL": PUBLIC_KEY,
            "EC2_WITH_SSH_USER_DATA_PATH": str(script),
        },
    ):
        config = Ec2WithSshStackConfig.from_settings()
    assert config.user_data_path == script
