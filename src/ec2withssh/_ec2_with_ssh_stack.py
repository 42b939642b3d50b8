"""Module for defining the EC2-with-SSH infrastructure using AWS CDK.

The stack declares a single-AZ VPC with one public subnet, a security
group allowing SSH from one address, an SSM-capable instance role,
a key pair and an Ubuntu EC2 instance, and exports the instance ID and
public IP.
"""

from logging import getLogger

import aws_cdk as cdk
import aws_cdk.aws_ec2 as ec2
import aws_cdk.aws_iam as iam
from constructs import Construct

from ._inputs import load_bootstrap_script, validate_input, validate_ip_format
from ._tags import apply_tags
from .schema import Ec2WithSshStackConfig

SSH_PORT = 22


class Ec2WithSshStack(cdk.Stack):
    """CDK Stack for an EC2 instance reachable over SSH from one address.

    Inputs are validated and the bootstrap script is read before the
    stack construct is created, so a failure leaves no partial graph
    in the enclosing app.
    """

    logger = getLogger(__name__)

    def __init__(
        self,
        scope: Construct,
        id: str,
        config: Ec2WithSshStackConfig,
        **kwargs,
    ) -> None:
        """Initialize the EC2-with-SSH stack.

        Args:
            scope: The parent construct.
            id: The construct ID.
            config: Declaration context and fixed configuration values.
            **kwargs: Additional keyword arguments passed to the parent Stack.

        Raises:
            MissingParameterError: The source IP parameter is absent or empty.
            InvalidParameterError: The source IP is malformed and format
                validation is enabled (the default).
            FileReadError: The bootstrap script cannot be read.
        """
        source_ip = validate_input(config.context, config.ip_parameter_name)
        if config.validate_ip_format:
            validate_ip_format(source_ip, config.ip_parameter_name)
        user_data = load_bootstrap_script(config.user_data_path)

        super().__init__(scope, id, **kwargs)
        self.config = config

        self.vpc = self.declare_network()
        self.security_group = self.declare_security_policy(self.vpc, source_ip)
        self.role = self.declare_identity()
        self.key_pair = self.declare_credential(config)
        self.instance = self.declare_compute(
            self.vpc, self.security_group, self.role, self.key_pair, user_data
        )
        self.instance_id_output, self.instance_public_ip_output = (
            self.declare_outputs(self.instance)
        )

        apply_tags(self, config.extra_tags)

    def declare_network(self) -> ec2.Vpc:
        """Declare a VPC with a single public subnet."""
        vpc = ec2.Vpc(
            self,
            "Vpc",
            max_azs=1,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24,
                ),
            ],
        )
        self.logger.debug("Declared VPC %s", vpc.node.path)
        return vpc

    def declare_security_policy(
        self, vpc: ec2.IVpc, source_ip: str
    ) -> ec2.SecurityGroup:
        """Declare a security group allowing SSH from source_ip only."""
        security_group = ec2.SecurityGroup(
            self,
            "SecurityGroup",
            vpc=vpc,
            description="Allow SSH access to EC2 instance",
            allow_all_outbound=True,
        )
        security_group.add_ingress_rule(
            ec2.Peer.ipv4(source_ip),
            ec2.Port.tcp(SSH_PORT),
            "Allow SSH access from specified IP",
        )
        self.logger.debug("Declared security group allowing SSH from %s", source_ip)
        return security_group

    def declare_identity(self) -> iam.Role:
        """Declare the instance role, with Session Manager access."""
        role = iam.Role(
            self,
            "Role",
            assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "AmazonSSMManagedInstanceCore"
                ),
            ],
        )
        self.logger.debug("Declared instance role %s", role.node.path)
        return role

    def declare_credential(self, config: Ec2WithSshStackConfig) -> ec2.IKeyPair:
        """Declare a new key pair, or reference an existing one by name."""
        if config.key_pair_mode == "reference":
            self.logger.info("Using existing key pair '%s'", config.key_pair_name)
            return ec2.KeyPair.from_key_pair_name(
                self, "ec2WithSSH-KeyPair", config.key_pair_name
            )

        self.logger.info("Importing key pair from public key material")
        return ec2.KeyPair(
            self,
            "ec2WithSSH-KeyPair",
            public_key_material=config.public_key_material,
        )

    def declare_compute(
        self,
        vpc: ec2.IVpc,
        security_group: ec2.ISecurityGroup,
        role: iam.IRole,
        key_pair: ec2.IKeyPair,
        user_data: str,
    ) -> ec2.Instance:
        """Declare the EC2 instance in the public subnet."""
        self.logger.info(
            "Declaring %s instance from image '%s'",
            self.config.instance_type,
            self.config.ami_name_pattern,
        )
        return ec2.Instance(
            self,
            "Instance",
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
            instance_type=ec2.InstanceType(self.config.instance_type),
            # most recent image matching the pattern, from the trusted owner only
            machine_image=ec2.MachineImage.lookup(
                name=self.config.ami_name_pattern,
                owners=[self.config.ami_owner],
            ),
            block_devices=[
                ec2.BlockDevice(
                    device_name=self.config.root_device_name,
                    volume=ec2.BlockDeviceVolume.ebs(self.config.root_volume_size_gib),
                ),
            ],
            security_group=security_group,
            role=role,
            key_pair=key_pair,
            user_data=ec2.UserData.custom(user_data),
        )

    def declare_outputs(
        self, instance: ec2.Instance
    ) -> tuple[cdk.CfnOutput, cdk.CfnOutput]:
        """Export the instance ID and public IP."""
        instance_id = cdk.CfnOutput(
            self,
            "ec2WithSSH-InstanceId",
            value=instance.instance_id,
            description="The ID of the EC2 instance",
        )

        instance_public_ip = cdk.CfnOutput(
            self,
            "ec2WithSSH-InstancePublicIp",
            value=instance.instance_public_ip,
            description="The public IP address of the EC2 instance",
        )

        return instance_id, instance_public_ip
