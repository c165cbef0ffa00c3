"""
Garbage collection of Terraform test resources.

One pass lists the Terraform resources matching a label selector, skips the
ones carrying a ``keep`` label or created too recently, and deletes the rest:
first their active Jobs, then the resource itself via ``kubectl delete``.
The first failure stops the run.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from .cmdrunner import Command, CommandRunner, run_command
from .config import CRD_TERRAFORM_PLURAL, KUBECTL_BINARY, kind_for_plural
from .errors import DependencyDeletionError, GCError, PrimaryDeletionError, SetupError
from .kube import KubeContext, delete_active_terraform_jobs, list_terraforms
from .retention import Decision, RetentionPolicy, evaluate


class RunState(str, Enum):
    VALIDATING = 'validating'
    ENUMERATING = 'enumerating'
    PROCESSING = 'processing'
    DONE = 'done'
    FAILED = 'failed'


class Outcome(str, Enum):
    SKIPPED_KEPT = 'skipped-kept'
    SKIPPED_TOO_YOUNG = 'skipped-too-young'
    DELETED = 'deleted'
    FAILED = 'failed'


@dataclass(frozen=True)
class InstanceOutcome:
    name: str
    outcome: Outcome
    error: Optional[GCError] = None


@dataclass
class RunSummary:
    outcomes: List[InstanceOutcome] = field(default_factory=list)

    def add(self, outcome: InstanceOutcome) -> None:
        self.outcomes.append(outcome)

    def names(self, outcome: Outcome) -> List[str]:
        return [o.name for o in self.outcomes if o.outcome == outcome]

    @property
    def deleted(self) -> List[str]:
        return self.names(Outcome.DELETED)

    def describe(self) -> str:
        return (
            f'{len(self.deleted)} deleted, '
            f'{len(self.names(Outcome.SKIPPED_KEPT))} kept, '
            f'{len(self.names(Outcome.SKIPPED_TOO_YOUNG))} too young'
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)


class GarbageCollector:
    """Runs a single garbage collection pass over one namespace."""

    def __init__(
        self,
        kube: Optional[KubeContext],
        policy: RetentionPolicy,
        command_runner: CommandRunner = run_command,
        clock: Callable[[], datetime] = _now,
        plural: str = CRD_TERRAFORM_PLURAL,
    ):
        self.kube = kube
        self.policy = policy
        self.command_runner = command_runner
        self.clock = clock
        self.plural = plural
        self.kind = kind_for_plural(plural)
        self.state = RunState.VALIDATING
        self.summary = RunSummary()

    def validate(self) -> None:
        if self.kube is None:
            raise SetupError('failed to validate setup: no Kubernetes client configured')
        if self.kube.custom_api is None or self.kube.batch_api is None:
            raise SetupError('failed to validate setup: Kubernetes client is incomplete')
        if not self.kube.namespace:
            raise SetupError('failed to validate setup: no namespace resolved')

    def run(self) -> RunSummary:
        """Run the pass. Raises the first GCError encountered."""
        self.state = RunState.VALIDATING
        self.summary = RunSummary()
        try:
            self.validate()

            self.state = RunState.ENUMERATING
            resources = list_terraforms(self.kube, self.plural, self.policy.selector)

            self.state = RunState.PROCESSING
            now = self.clock()
            for r in resources:
                decision = evaluate(r, self.policy.max_age, now)
                created = r.creation_timestamp.isoformat()

                if decision == Decision.SKIPPED_KEPT:
                    print(f'not removing {self.kind} {r.name} as it has a keep label', flush=True)
                    self.summary.add(InstanceOutcome(r.name, Outcome.SKIPPED_KEPT))
                    continue

                if decision == Decision.SKIPPED_TOO_YOUNG:
                    print(f'not removing {self.kind} {r.name} as it was created at {created}', flush=True)
                    self.summary.add(InstanceOutcome(r.name, Outcome.SKIPPED_TOO_YOUNG))
                    continue

                try:
                    self.delete_terraform(self.kind, r.name)
                except GCError as e:
                    self.summary.add(InstanceOutcome(r.name, Outcome.FAILED, error=e))
                    raise

                print(f'deleted {self.kind} {r.name} as it was created at: {created}', flush=True)
                self.summary.add(InstanceOutcome(r.name, Outcome.DELETED))
        except GCError:
            self.state = RunState.FAILED
            raise

        self.state = RunState.DONE
        return self.summary

    def delete_terraform(self, kind: str, name: str) -> None:
        """Delete the active Jobs of a resource and then the resource itself."""
        ns = self.kube.namespace
        try:
            delete_active_terraform_jobs(self.kube, name)
        except Exception as e:
            raise DependencyDeletionError(
                f'failed to delete active {kind} Jobs for namespace {ns} name {name}: {e}',
                namespace=ns, kind=kind, name=name,
            ) from e

        print(f'deleting {kind} {name}', flush=True)
        cmd = Command(
            name=KUBECTL_BINARY,
            args=['delete', kind, name, '--namespace', ns],
            timeout=self.kube.request_timeout,
        )
        try:
            result = self.command_runner(cmd)
        except Exception as e:
            raise PrimaryDeletionError(
                f'failed to run {cmd.cli()}: {e}',
                namespace=ns, kind=kind, name=name,
            ) from e
        if not result.ok:
            raise PrimaryDeletionError(
                f'failed to run {cmd.cli()}: exit status {result.rc}: {result.output}',
                output=result.output, namespace=ns, kind=kind, name=name,
            )
