"""
Errors raised while garbage collecting Terraform resources.

Every error stops the run. The message names the operation that failed and
the resource it was working on; the underlying exception is chained.
"""

from typing import Optional


class GCError(RuntimeError):
    """Base class for all garbage collection failures."""

    def __init__(
        self,
        message: str,
        namespace: Optional[str] = None,
        kind: Optional[str] = None,
        name: Optional[str] = None,
    ):
        super().__init__(message)
        self.namespace = namespace
        self.kind = kind
        self.name = name


class SetupError(GCError):
    """The Kubernetes client or namespace could not be resolved."""


class QueryError(GCError):
    """Listing the Terraform resources failed."""


class DependencyDeletionError(GCError):
    """Deleting the active Jobs of a Terraform resource failed."""


class PrimaryDeletionError(GCError):
    """Deleting the Terraform resource itself failed."""

    def __init__(self, message: str, output: str = '', **kwargs):
        super().__init__(message, **kwargs)
        self.output = output
