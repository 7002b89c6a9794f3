from typing import Dict, Optional
from instance_proxy.cluster.models import LabelSelector, LabelSelectorRequirement, SelectorOperator

# Rendering of a selector with no requirements, as kubectl prints it
EMPTY_SELECTOR = "<none>"

def selector_from_map(selector: Optional[Dict[str, str]]) -> LabelSelector:
    """Builds an equality-only selector from a plain key/value map (a service selector)."""
    return LabelSelector(match_labels=dict(selector or {}))

def _format_requirement(requirement: LabelSelectorRequirement) -> str:
    values = ",".join(sorted(requirement.values))
    if requirement.operator == SelectorOperator.IN:
        return f"{requirement.key} in ({values})"
    if requirement.operator == SelectorOperator.NOT_IN:
        return f"{requirement.key} notin ({values})"
    if requirement.operator == SelectorOperator.EXISTS:
        return requirement.key
    return f"!{requirement.key}"

def format_selector(selector: Optional[LabelSelector]) -> str:
    """Renders a selector in the canonical string form used by the Kubernetes API.

    Requirements are sorted by key so that two selectors expressing the same
    constraints render identically.
    """
    if selector is None or selector.is_empty():
        return EMPTY_SELECTOR

    parts = [(key, f"{key}={value}") for key, value in selector.match_labels.items()]
    parts += [(req.key, _format_requirement(req)) for req in selector.match_expressions]
    return ",".join(text for _, text in sorted(parts))

def _requirement_matches(requirement: LabelSelectorRequirement, labels: Dict[str, str]) -> bool:
    present = requirement.key in labels
    if requirement.operator == SelectorOperator.IN:
        return present and labels[requirement.key] in requirement.values
    if requirement.operator == SelectorOperator.NOT_IN:
        return not present or labels[requirement.key] not in requirement.values
    if requirement.operator == SelectorOperator.EXISTS:
        return present
    return not present

def matches(selector: LabelSelector, labels: Dict[str, str]) -> bool:
    """Returns True if the label set satisfies every requirement of the selector.

    An empty selector matches any label set; callers that must not treat an
    empty selector as a wildcard check is_empty() first.
    """
    for key, value in selector.match_labels.items():
        if labels.get(key) != value:
            return False
    return all(_requirement_matches(req, labels) for req in selector.match_expressions)
