"""
Best-effort app/stage/region/account inference for a state snapshot.
"""

from typing import Dict, Optional

from .identity import arn_account
from .models import DeclaredState, StateMetadata
from .tree import STACK_ROOT_MARKER


UNKNOWN = "Unknown"
DEFAULT_REGION = "us-west-2"
AWS_PROVIDER_TYPE = "pulumi:providers:aws"


def _non_empty(value: Optional[str]) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def _app_stage_from_stack(stack: str) -> Dict[str, str]:
    parts = stack.split("/")
    if len(parts) >= 3:
        return {"app": parts[1], "stage": parts[2]}
    return {"app": stack}


def _app_stage_from_urn(urn: str) -> Dict[str, str]:
    # urn:pulumi:<stage>::<app>::<type>::<name>
    parts = urn.split("::")
    if len(parts) < 3:
        return {}
    found = {"app": parts[1]}
    header = parts[0].split(":")
    if len(header) >= 3:
        found["stage"] = header[2]
    return found


def infer_metadata(state: DeclaredState, detected: Optional[Dict[str, str]] = None) -> StateMetadata:
    """
    Infer where a state snapshot was deployed.

    Args:
        state: Declared state
        detected: app/stage already known from project config, if any

    Returns:
        Metadata with "Unknown" for anything that could not be inferred
    """
    detected = detected or {}
    app = _non_empty(detected.get("app"))
    stage = _non_empty(detected.get("stage"))

    if app is None or stage is None:
        found: Dict[str, str] = {}
        if state.stack:
            found = _app_stage_from_stack(state.stack)
        elif state.resources:
            reference = next(
                (r for r in state.resources if r.type != STACK_ROOT_MARKER),
                state.resources[0],
            )
            found = _app_stage_from_urn(reference.urn)
        app = app or _non_empty(found.get("app"))
        stage = stage or _non_empty(found.get("stage"))

    region = None
    provider = next((r for r in state.resources if r.type == AWS_PROVIDER_TYPE), None)
    if provider is not None:
        region = _non_empty(provider.inputs.get("region")) or _non_empty(provider.output("region"))

    # S3 ARNs carry no account field, keep looking past them
    account = None
    for resource in state.resources:
        account = arn_account(resource.output("arn"))
        if account:
            break

    return StateMetadata(
        app=app or UNKNOWN,
        stage=stage or UNKNOWN,
        region=region or DEFAULT_REGION,
        account=account or UNKNOWN,
    )
