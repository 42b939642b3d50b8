from typing import Tuple

import aws_cdk as cdk
from aws_cdk.assertions import Template

from ec2withssh import Ec2WithSshStack, Ec2WithSshStackConfig

PUBLIC_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIFakeTestKeyMaterialForUnitTests test@example"

# MachineImage.lookup refuses environment-agnostic stacks
TEST_ENV = cdk.Environment(account="123456789012", region="eu-west-2")


def make_config(**kwargs) -> Ec2WithSshStackConfig:
    params = {
        "context": {"myIp": "203.0.113.5/32"},
        "public_key_material": PUBLIC_KEY,
    }
    params.update(kwargs)
    return Ec2WithSshStackConfig(**params)


def synth_stack(
    config: Ec2WithSshStackConfig,
) -> Tuple[cdk.App, Ec2WithSshStack, Template]:
    app = cdk.App()
    stack = Ec2WithSshStack(app, "TestStack", config=config, env=TEST_ENV)
    return app, stack, Template.from_stack(stack)


def only_resource(template: Template, resource_type: str) -> dict:
    resources = template.find_resources(resource_type)
    assert len(resources) == 1, f"expected one {resource_type}, got {resources}"
    return next(iter(resources.values()))
