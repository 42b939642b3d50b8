from typing import Tuple

import aws_cdk as cdk
from constructs import IConstruct


def unpack_tags(tags: str | None) -> Tuple[Tuple[str, str], ...]:
    tags_unpacked: list[Tuple[str, str]] = []
    if tags:
        try:
            for tag in tags.split(";"):
                key, value = tag.split("=")
                tags_unpacked.append((key.strip(), value.strip()))
        except ValueError:
            raise ValueError(
                "Tags must be in the format 'key1=value1;key2=value2', "
                f"but instead got {tags}"
            )
    return tuple(tags_unpacked)


def apply_tags(scope: IConstruct, tags: Tuple[Tuple[str, str], ...]) -> None:
    """Tag every taggable construct under scope."""
    for key, value in tags:
        cdk.Tags.of(scope).add(key, value)
