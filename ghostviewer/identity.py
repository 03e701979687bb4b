"""
Identity and classification helpers for state resources and ARNs.

Everything here is a pure function that degrades to a sentinel value
instead of raising when a resource lacks the data being asked for.
"""

import json
from dataclasses import dataclass
from typing import Any, List, Optional

from .models import Resource


NOT_AVAILABLE = "N/A"
ENCRYPTED_PLACEHOLDER = "[Encrypted Secret]"

# Keys that mark a value as an encrypted secret envelope.
# The hex key is Pulumi's secret signature.
SECRET_MARKERS = ("ciphertext", "4dabf18193072939515e22adb298388d")


@dataclass(frozen=True)
class Arn:
    """An ARN split into its colon-delimited fields."""
    partition: str
    service: str
    region: str
    account: str
    resource: str
    parts: List[str]

    @property
    def tail(self) -> str:
        """Last colon-delimited field."""
        return self.parts[-1]


def parse_arn(value: Any) -> Optional[Arn]:
    """
    Parse an ARN string.

    Args:
        value: Candidate ARN

    Returns:
        Parsed ARN, or None when value is not a well-formed ARN
    """
    if not isinstance(value, str) or not value.startswith("arn:"):
        return None

    parts = value.split(":")
    if len(parts) < 6 or not parts[2]:
        return None

    return Arn(
        partition=parts[1],
        service=parts[2],
        region=parts[3],
        account=parts[4],
        resource=":".join(parts[5:]),
        parts=parts,
    )


def arn_service(arn: str) -> str:
    """Service segment of an ARN (third field), or 'unknown'."""
    parts = arn.split(":") if isinstance(arn, str) else []
    if len(parts) >= 3 and parts[2]:
        return parts[2]
    return "unknown"


def arn_account(arn: Any) -> Optional[str]:
    """Account id field of an ARN, if it has one."""
    parsed = parse_arn(arn)
    if parsed and parsed.account:
        return parsed.account
    return None


def arn_name(arn: str) -> str:
    """Last ':' or '/' delimited segment of an ARN."""
    tail = arn.replace("/", ":").split(":")[-1]
    return tail or arn


def simple_type(type_name: str) -> str:
    """
    Reduce a type token to its last segment.

    "sst:aws:Bucket" -> "Bucket", "aws:s3/bucket:Bucket" -> "Bucket",
    "aws:lambda/function" -> "function".
    """
    last = type_name.split(":")[-1]
    if "/" in last:
        return last.split("/")[-1] or last
    return last


def is_encrypted(value: Any) -> bool:
    """Check whether value is an encrypted secret envelope."""
    return isinstance(value, dict) and any(value.get(marker) for marker in SECRET_MARKERS)


def safe_render(value: Any) -> str:
    """
    Render an output value as display text without leaking secrets.

    Args:
        value: Any JSON value from a resource's outputs

    Returns:
        Display string; encrypted envelopes become a placeholder
    """
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        if is_encrypted(value):
            return ENCRYPTED_PLACEHOLDER
        return json.dumps(value, separators=(",", ":"), default=str)
    if isinstance(value, (list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def handler_name(resource: Resource) -> Optional[str]:
    """
    Extract a function handler's file stem, e.g. "src/api.handler" -> "api".

    Args:
        resource: Resource to inspect

    Returns:
        Handler name, or None when the resource has no handler output
    """
    metadata = resource.output("_metadata")
    handler = metadata.get("handler") if isinstance(metadata, dict) else None
    if not handler:
        handler = resource.output("handler")
    if not isinstance(handler, str) or not handler:
        return None

    file_name = handler.split("/")[-1]
    return file_name.split(".")[0] or handler


def resource_display_id(resource: Resource) -> str:
    """
    Pick a human-readable identifier for a resource.

    Preference order is the physical id, the ARN's last field, the name
    output, then the URN's last segment.

    Args:
        resource: Resource to identify

    Returns:
        Display id, or "N/A" when nothing usable is present
    """
    base_id = NOT_AVAILABLE

    arn = resource.output("arn")
    name = resource.output("name")
    if resource.id:
        base_id = resource.id
    elif isinstance(arn, str) and arn and "ciphertext" not in arn:
        base_id = arn.split(":")[-1] or arn
    elif name:
        base_id = safe_render(name) or NOT_AVAILABLE

    if base_id == NOT_AVAILABLE:
        base_id = resource.urn.split("::")[-1] or NOT_AVAILABLE

    # Route ids are opaque, the route key is what people recognise
    route_key = resource.output("routeKey")
    if "apigateway" in resource.type and "route" in resource.type.lower() and route_key:
        return f"{base_id} : {safe_render(route_key)}"

    return base_id


def resource_region(resource: Resource, default: str = "us-west-2") -> str:
    """Region recorded in a resource's outputs, or default."""
    region = resource.output("region")
    if isinstance(region, str) and region:
        return region
    return default
