"""CDK application entry point for the EC2-with-SSH infrastructure.

This module initializes the AWS CDK application, builds the stack
configuration from CDK context and environment settings, and
deploys the EC2-with-SSH stack. Supply the SSH source address with
``cdk deploy -c myIp=your.ip.address/32``.
"""
import os

import aws_cdk as cdk
from ec2withssh import Ec2WithSshStack, Ec2WithSshStackConfig

app = cdk.App()

config = Ec2WithSshStackConfig.from_context(app)

# MachineImage.lookup needs a concrete account and region
ec2_with_ssh_stack = Ec2WithSshStack(
    app,
    "Ec2WithSSHStack",
    config=config,
    env=cdk.Environment(
        account=os.getenv("CDK_DEFAULT_ACCOUNT"),
        region=os.getenv("CDK_DEFAULT_REGION"),
    ),
    tags={
        "Project": "ec2withssh",
    },
)

app.synth()
