"""
Search and filter predicates for the state explorer.
"""

from typing import Any, Iterable, List, Optional, Sequence, Set

from .identity import safe_render, simple_type
from .models import Resource


# Provider families offered as filter toggles
PROVIDER_FILTERS = ("aws", "sst:aws", "sst")


def provider_family(type_name: str) -> Optional[str]:
    """
    Classify a type token into a provider family.

    Returns:
        "sst:aws", "aws", "sst" or None for anything else (e.g. pulumi:*)
    """
    if type_name.startswith("sst:aws:"):
        return "sst:aws"
    if type_name.startswith("aws:"):
        return "aws"
    if type_name.startswith("sst:"):
        return "sst"
    return None


def _searchable_values(resource: Resource) -> List[str]:
    metadata = resource.output("_metadata")
    values: List[Any] = [
        resource.type,
        resource.urn,
        resource.id,
        resource.output("arn"),
        resource.output("name"),
        resource.output("handler"),
        metadata.get("handler") if isinstance(metadata, dict) else None,
    ]
    return [safe_render(value).lower() for value in values if value]


def matches_query(resource: Resource, query: str) -> bool:
    """
    Check a resource against a free-text query.

    Every whitespace-separated term must occur, case-insensitively, in at
    least one searchable field.
    """
    terms = query.lower().split()
    if not terms:
        return True

    haystack = _searchable_values(resource)
    return all(any(term in value for value in haystack) for term in terms)


def filter_resources(
    resources: Iterable[Resource],
    query: str = "",
    providers: Sequence[str] = (),
    types: Sequence[str] = (),
) -> List[Resource]:
    """
    Filter resources for the list view and for tree matching.

    Args:
        resources: Resources from state
        query: Free-text query
        providers: Provider families to keep (empty keeps all)
        types: Simple types to keep (empty keeps all)

    Returns:
        Matching resources in their original order
    """
    result = list(resources)
    if providers:
        wanted = set(providers)
        result = [r for r in result if provider_family(r.type) in wanted]
    if types:
        wanted_types = set(types)
        result = [r for r in result if simple_type(r.type) in wanted_types]
    if query and query.strip():
        result = [r for r in result if matches_query(r, query)]
    return result


def matched_urns(
    resources: Iterable[Resource],
    query: str = "",
    providers: Sequence[str] = (),
    types: Sequence[str] = (),
) -> Set[str]:
    """URNs of the resources passing the active filters."""
    return {r.urn for r in filter_resources(resources, query, providers, types)}


def available_types(
    resources: Iterable[Resource],
    query: str = "",
    providers: Sequence[str] = (),
    selected: Sequence[str] = (),
) -> List[str]:
    """Simple types offered by the type picker, including already selected ones."""
    remaining = filter_resources(resources, query, providers)
    return sorted({simple_type(r.type) for r in remaining} | set(selected))
