"""
Declared state loading from local files or S3.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import StateUnavailable
from .models import DeclaredState, Resource

logger = logging.getLogger(__name__)


S3_PREFIX = "s3://"
REGION_PATTERN = re.compile(r"^[a-z]{2}(-gov)?-[a-z]+-\d+$")

# First layout present wins, even when its list is empty
RESOURCE_PATHS = (
    ("latest", "resources"),
    ("checkpoint", "latest", "resources"),
    ("deployment", "resources"),
)


def parse_s3_location(location: str) -> Tuple[str, str, Optional[str]]:
    """
    Split an s3://bucket/key[:region] location.

    Args:
        location: S3 location string

    Returns:
        Tuple of (bucket, key, region or None)

    Raises:
        ValueError: If the location has no bucket or key
    """
    remainder = location[len(S3_PREFIX):]
    region = None
    if ":" in remainder:
        head, tail = remainder.rsplit(":", 1)
        if REGION_PATTERN.match(tail):
            remainder, region = head, tail

    bucket, _, key = remainder.partition("/")
    if not bucket or not key:
        raise ValueError(f"Invalid S3 state location: {location}. Expected 's3://bucket/key[:region]'")
    return bucket, key, region


def _read_s3(location: str, client: Optional[Any] = None) -> str:
    bucket, key, region = parse_s3_location(location)
    if client is None:
        client = boto3.client("s3", region_name=region)
    response = client.get_object(Bucket=bucket, Key=key)
    return response["Body"].read().decode("utf-8")


def _get_path(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def extract_resources(data: Dict[str, Any]) -> List[Resource]:
    """
    Pull the resource list out of a state document.

    SST v3 state keeps resources under latest, Pulumi checkpoints under
    checkpoint.latest, and exported stacks under deployment.
    """
    raw = None
    for layout in RESOURCE_PATHS:
        raw = _get_path(data, *layout)
        if raw is not None:
            break
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning("State resources field is not a list; treating as empty")
        return []

    resources = []
    for record in raw:
        try:
            resources.append(Resource.from_dict(record))
        except ValueError as e:
            logger.warning(f"Skipping malformed resource record: {e}")
    return resources


def extract_stack(data: Dict[str, Any]) -> Optional[str]:
    """Stack identifier ("project/app/stage") if the state records one."""
    for candidate in (
        _get_path(data, "stack"),
        _get_path(data, "deployment", "stack"),
        _get_path(data, "checkpoint", "stack"),
    ):
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


def parse_state(data: Any, source: Optional[str] = None) -> DeclaredState:
    """Build a DeclaredState from an already-decoded state document."""
    if not isinstance(data, dict):
        raise StateUnavailable(f"State document in {source or 'input'} is not a JSON object")
    return DeclaredState(
        resources=extract_resources(data),
        stack=extract_stack(data),
        source=source,
    )


def read_declared_state(path: Optional[str], s3_client: Optional[Any] = None) -> DeclaredState:
    """
    Read and parse a state file.

    Args:
        path: Local path or s3://bucket/key[:region]
        s3_client: Optional S3 client for remote state

    Returns:
        Parsed declared state

    Raises:
        StateUnavailable: If the state is missing, unreadable or not valid JSON
    """
    if not path:
        raise StateUnavailable("State file not found. Please set the path in Settings.")

    try:
        if path.startswith(S3_PREFIX):
            text = _read_s3(path, s3_client)
        else:
            state_file = Path(path)
            if not state_file.is_file():
                raise StateUnavailable(f"State file not found: {path}")
            text = state_file.read_text(encoding="utf-8")
        data = json.loads(text)
    except StateUnavailable:
        raise
    except json.JSONDecodeError as e:
        raise StateUnavailable(f"State file {path} is not valid JSON: {e}") from e
    except (OSError, ValueError, ClientError, BotoCoreError) as e:
        raise StateUnavailable(f"Could not read state file {path}: {e}") from e

    state = parse_state(data, source=path)
    logger.debug(f"Loaded {len(state.resources)} resources from {path}")
    return state


def state_exists(path: Optional[str]) -> bool:
    """Cheap existence check used by the config endpoint; S3 paths are assumed present."""
    if not path:
        return False
    if path.startswith(S3_PREFIX):
        return True
    return Path(path).is_file()
