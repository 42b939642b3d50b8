"""
Schema definitions for the EC2-with-SSH stack.

This module provides the configuration object that is passed into
the stack definition, and the helpers that build it from environment
variables and CDK context.
"""

from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

from constructs import Construct
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._tags import unpack_tags

env_prefix = "EC2_WITH_SSH_"

DEFAULT_IP_PARAMETER_NAME = "myIp"

DEFAULT_USER_DATA_PATH = Path(__file__).parent / "user_data" / "user-data.yml"

InstanceTypeName = Literal[
    "t3.micro",
    "t3.small",
    "t3.medium",
    "t3.large",
    "t3.xlarge",
    "t3.2xlarge",
]

KeyPairMode = Literal["inline", "reference"]

# CDK context key -> config field
_CONTEXT_FIELDS = {
    "instanceType": "instance_type",
    "keyPairMode": "key_pair_mode",
    "publicKey": "public_key_material",
    "keyPairName": "key_pair_name",
    "validateIpFormat": "validate_ip_format",
}


class _Ec2WithSshSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", env_prefix=env_prefix
    )
    source_ip: Optional[str] = None
    ip_parameter_name: Optional[str] = None
    instance_type: Optional[str] = None
    ami_name_pattern: Optional[str] = None
    ami_owner: Optional[str] = None
    root_device_name: Optional[str] = None
    root_volume_size_gib: Optional[int] = None
    key_pair_mode: Optional[str] = None
    public_key_material: Optional[str] = None
    key_pair_name: Optional[str] = None
    user_data_path: Optional[Path] = None
    validate_ip_format: Optional[bool] = None
    extra_tags_str: Optional[str] = None  # in the format "key1=value1;key2=value2"


class Ec2WithSshStackConfig(BaseModel, frozen=True):
    """
    Configuration for the EC2-with-SSH stack.

    Attributes:
        context: Declaration context, parameter name to value.
            The SSH source address is read from here.
        ip_parameter_name: Name of the context parameter holding the
            SSH source address (``myIp`` or ``IPV4``)
        instance_type: EC2 instance type, one of a fixed set of T3 sizes
        ami_name_pattern: Name filter for the machine image lookup
        ami_owner: Account ID of the trusted image publisher
        root_device_name: Device name of the attached EBS volume
        root_volume_size_gib: Size of the attached EBS volume
        key_pair_mode: ``inline`` creates a key pair from public_key_material,
            ``reference`` binds to an existing key pair named key_pair_name
        public_key_material: OpenSSH public key, for inline mode
        key_pair_name: Name of an existing key pair, for reference mode
        user_data_path: Bootstrap script attached to the instance
        validate_ip_format: Reject malformed source addresses before any
            construct is declared; False checks presence only and leaves
            format errors to ec2.Peer.ipv4
        extra_tags: tuple of 2-tuples of additional tags
    """

    context: Dict[str, str] = Field(default_factory=dict)
    ip_parameter_name: str = DEFAULT_IP_PARAMETER_NAME
    instance_type: InstanceTypeName = "t3.xlarge"
    ami_name_pattern: str = "ubuntu/images/hvm-ssd/ubuntu-jammy-22.04-amd64-server-*"
    ami_owner: str = "099720109477"  # Canonical
    root_device_name: str = "/dev/sda1"
    root_volume_size_gib: int = Field(default=125, gt=0)
    key_pair_mode: KeyPairMode = "inline"
    public_key_material: Optional[str] = None
    key_pair_name: Optional[str] = None
    user_data_path: Path = DEFAULT_USER_DATA_PATH
    validate_ip_format: bool = True
    extra_tags: Tuple[Tuple[str, str], ...] = ()

    @model_validator(mode="after")
    def _check_key_pair(self) -> "Ec2WithSshStackConfig":
        if self.key_pair_mode == "inline" and not self.public_key_material:
            raise ValueError(
                "public_key_material is required when key_pair_mode is 'inline'. "
                f"Set {env_prefix}PUBLIC_KEY_MATERIAL or use -c publicKey=..."
            )
        if self.key_pair_mode == "reference" and not self.key_pair_name:
            raise ValueError(
                "key_pair_name is required when key_pair_mode is 'reference'. "
                f"Set {env_prefix}KEY_PAIR_NAME or use -c keyPairName=..."
            )
        return self

    @classmethod
    def from_settings(cls, **kwargs):
        """Create an instance from environment settings with optional overrides."""
        settings = _Ec2WithSshSettings()

        params: Dict[str, Any] = {
            field: value
            for field, value in settings.model_dump(
                exclude={"source_ip", "extra_tags_str"}
            ).items()
            if value is not None
        }
        params["extra_tags"] = unpack_tags(settings.extra_tags_str)

        context = dict(kwargs.pop("context", {}))

        # Override with any provided kwargs
        params.update(kwargs)

        parameter_name = params.get("ip_parameter_name", DEFAULT_IP_PARAMETER_NAME)
        if settings.source_ip is not None:
            context.setdefault(parameter_name, settings.source_ip)
        params["context"] = context

        return cls(**params)

    @classmethod
    def from_context(cls, scope: Construct, **kwargs):
        """Create an instance from the CDK context of scope.

        Context values win over environment settings; explicit kwargs win
        over both.
        """
        overrides: Dict[str, Any] = {}
        for context_key, field in _CONTEXT_FIELDS.items():
            value = scope.node.try_get_context(context_key)
            if value is not None:
                overrides[field] = value
        overrides.update(kwargs)

        parameter_name = (
            overrides.get("ip_parameter_name")
            or _Ec2WithSshSettings().ip_parameter_name
            or DEFAULT_IP_PARAMETER_NAME
        )
        context = dict(overrides.pop("context", {}))
        source_ip = scope.node.try_get_context(parameter_name)
        if source_ip is not None:
            context.setdefault(parameter_name, str(source_ip))

        return cls.from_settings(context=context, **overrides)
