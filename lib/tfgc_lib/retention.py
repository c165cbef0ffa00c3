"""
Retention policy for Terraform test resources.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from .resources import TerraformResource


class Decision(str, Enum):
    SKIPPED_KEPT = 'skipped-kept'
    SKIPPED_TOO_YOUNG = 'skipped-too-young'
    ELIGIBLE = 'eligible-for-deletion'


@dataclass(frozen=True)
class RetentionPolicy:
    selector: str
    max_age: timedelta


def evaluate(resource: TerraformResource, max_age: timedelta, now: datetime) -> Decision:
    """Decide whether a resource should be kept or garbage collected.

    A non-empty ``keep`` label always wins. Otherwise the resource must have
    been created strictly before ``now - max_age``; a resource created exactly
    at the cutoff is still considered too young.
    """
    if resource.keep:
        return Decision.SKIPPED_KEPT
    if not resource.creation_timestamp < now - max_age:
        return Decision.SKIPPED_TOO_YOUNG
    return Decision.ELIGIBLE
