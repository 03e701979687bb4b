"""
Orphan reconciliation between declared state and tagged cloud resources.
"""

import logging
from typing import Callable, Dict, Iterable, List, Sequence, Set, Tuple

from .errors import StateUnavailable
from .identity import arn_name, arn_service
from .models import DeclaredState, ObservedResource, Orphan, Resource, ScanResult

logger = logging.getLogger(__name__)


StateReader = Callable[[], DeclaredState]
Fetcher = Callable[[str, str, str], Sequence[ObservedResource]]


def declared_identities(resources: Iterable[Resource]) -> Set[str]:
    """
    Collect identity strings for declared resources.

    Each resource contributes its physical id and its ARN output, when present.
    """
    identities: Set[str] = set()
    for resource in resources:
        if resource.id:
            identities.add(resource.id)
        arn = resource.output("arn")
        if isinstance(arn, str) and arn:
            identities.add(arn)
    return identities


def is_managed(arn: str, identities: Set[str]) -> bool:
    """
    Check whether an observed ARN corresponds to a declared identity.

    Exact membership is tried first, then a suffix match, because state
    often stores short physical names while the tagging API returns full
    ARNs. The suffix match can hide an unrelated resource whose ARN happens
    to end with a declared name.
    """
    if arn in identities:
        return True
    return any(arn.endswith(identity) for identity in identities)


def to_orphan(observed: ObservedResource) -> Orphan:
    """Derive the orphan record for an unmatched observed resource."""
    tags = observed.tag_map()
    return Orphan(
        arn=observed.arn,
        type=arn_service(observed.arn),
        tags=tags,
        name=tags.get("Name") or arn_name(observed.arn),
    )


def reconcile(
    identities: Set[str],
    observed: Sequence[ObservedResource],
    warnings: Sequence[str] = (),
) -> ScanResult:
    """
    Classify observed resources as managed or orphaned.

    Args:
        identities: Declared identity strings (ids and ARNs)
        observed: Resources returned by the tag query
        warnings: Notices to carry on the result

    Returns:
        Scan result with orphans in observed order
    """
    orphans = tuple(
        to_orphan(resource)
        for resource in observed
        if not is_managed(resource.arn, identities)
    )
    return ScanResult(
        total_found=len(observed),
        managed_count=len(identities),
        orphans=orphans,
        warnings=tuple(warnings),
    )


def scan(
    app: str,
    stage: str,
    region: str,
    read_state: StateReader,
    fetch: Fetcher,
) -> ScanResult:
    """
    Run a full orphan scan.

    An unreadable state file does not stop the scan: every observed
    resource is reported as an orphan and a warning is attached.

    Args:
        app: sst:app tag value or "*"
        stage: sst:stage tag value or "*"
        region: AWS region
        read_state: Callable returning the declared state
        fetch: Tag query, fetch(app, stage, region)

    Returns:
        Scan result

    Raises:
        CredentialFailure: If the tag query reports bad credentials
        ScanError: If the tag query fails otherwise
    """
    warnings: List[str] = []
    try:
        identities = declared_identities(read_state().resources)
    except StateUnavailable as e:
        logger.warning(f"Scanning without declared state, all resources will be reported: {e}")
        warnings.append(f"State unavailable, every tagged resource is listed as an orphan: {e}")
        identities = set()

    observed = fetch(app, stage, region)
    result = reconcile(identities, observed, warnings)
    logger.info(
        f"Scan complete: {result.total_found} found, {result.managed_count} managed ids, "
        f"{len(result.orphans)} orphans"
    )
    return result


def filter_orphans(
    orphans: Iterable[Orphan],
    query: str = "",
    types: Sequence[str] = (),
) -> List[Orphan]:
    """Filter orphans by service type and a free-text query over type, name and ARN."""
    result = list(orphans)
    if types:
        wanted = set(types)
        result = [o for o in result if (o.type or "unknown") in wanted]

    terms = query.lower().split()
    if terms:
        result = [
            o for o in result
            if all(any(term in field.lower() for field in (o.type, o.name, o.arn)) for term in terms)
        ]
    return result


def orphan_types(orphans: Iterable[Orphan], selected: Sequence[str] = ()) -> List[str]:
    """Service types present among orphans, plus any already selected."""
    return sorted({o.type or "unknown" for o in orphans} | set(selected))


def group_orphans(orphans: Iterable[Orphan]) -> List[Tuple[str, List[Orphan]]]:
    """Group orphans by service type, sorted by type name."""
    groups: Dict[str, List[Orphan]] = {}
    for orphan in orphans:
        groups.setdefault(orphan.type or "unknown", []).append(orphan)
    return sorted(groups.items(), key=lambda item: item[0])
