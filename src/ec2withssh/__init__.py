from ._ec2_with_ssh_stack import Ec2WithSshStack
from ._inputs import load_bootstrap_script, validate_input, validate_ip_format
from .errors import FileReadError, InvalidParameterError, MissingParameterError
from .schema import Ec2WithSshStackConfig

__all__ = [
    "Ec2WithSshStack",
    "Ec2WithSshStackConfig",
    "FileReadError",
    "InvalidParameterError",
    "MissingParameterError",
    "load_bootstrap_script",
    "validate_input",
    "validate_ip_format",
]
