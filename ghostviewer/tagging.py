"""
Resource Groups Tagging API queries for SST-tagged resources.
"""

import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from .errors import CredentialFailure, ScanError
from .models import ObservedResource

logger = logging.getLogger(__name__)


APP_TAG = "sst:app"
STAGE_TAG = "sst:stage"
WILDCARD = "*"

CREDENTIAL_ERROR_CODES = {
    "ExpiredToken",
    "ExpiredTokenException",
    "InvalidClientTokenId",
    "UnrecognizedClientException",
    "InvalidSignatureException",
    "RequestExpired",
}


def build_tag_filters(app: str, stage: str) -> List[Dict[str, Any]]:
    """
    Build TagFilters for an app/stage pair.

    A "*" value filters on the tag key only, matching any value.
    """
    filters = []
    for key, value in ((APP_TAG, app), (STAGE_TAG, stage)):
        if value == WILDCARD:
            filters.append({"Key": key})
        else:
            filters.append({"Key": key, "Values": [value]})
    return filters


def is_credential_error(error: Exception) -> bool:
    """Check whether an AWS error means the caller must re-authenticate."""
    if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
        return True
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        if code in CREDENTIAL_ERROR_CODES:
            return True
    return "expired" in str(error).lower()


def fetch_tagged_resources(
    app: str,
    stage: str,
    region: str,
    client: Optional[Any] = None,
) -> List[ObservedResource]:
    """
    List every resource tagged with the given SST app and stage.

    Args:
        app: Value of the sst:app tag, or "*" for any app
        stage: Value of the sst:stage tag, or "*" for any stage
        region: AWS region to query
        client: Optional pre-built resourcegroupstaggingapi client

    Returns:
        All matching resources, after paginating to exhaustion

    Raises:
        CredentialFailure: If AWS credentials are missing, expired or invalid
        ScanError: If the query fails for any other reason
    """
    logger.info(f"Starting scan for App:{app} Stage:{stage} in {region}...")

    found: List[ObservedResource] = []
    try:
        if client is None:
            client = boto3.client("resourcegroupstaggingapi", region_name=region)

        paginator = client.get_paginator("get_resources")
        for page in paginator.paginate(TagFilters=build_tag_filters(app, stage)):
            for mapping in page.get("ResourceTagMappingList", []):
                found.append(ObservedResource(
                    arn=mapping.get("ResourceARN", ""),
                    tags=list(mapping.get("Tags", [])),
                ))

    except (ClientError, BotoCoreError) as e:
        if is_credential_error(e):
            logger.warning(f"Tagging API rejected credentials: {e}")
            raise CredentialFailure() from e
        logger.error(f"Resource Groups Tagging API failed: {e}")
        raise ScanError(str(e)) from e

    logger.info(f"Found {len(found)} tagged resources in {region}")
    return found
