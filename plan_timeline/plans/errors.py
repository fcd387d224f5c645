"""Canonical plan scheduling error types.

Standard error codes:
- INVALID_INTERVAL: Minute interval is empty, reversed or outside the day
- SELECTION_CONFLICT: Finished timeline selection is empty or overlaps a plan
- PLAN_NOT_FOUND: Repository has no plan with the requested id
- GROUP_MUTATION_FAILED: A repository call failed inside a group mutation
"""


class PlanSchedulingError(RuntimeError):
    """Base class for plan scheduling failures.

    Attributes:
        code: Error code (e.g., "INVALID_INTERVAL", "GROUP_MUTATION_FAILED")
        details: List of error detail strings
    """

    code = "PLAN_SCHEDULING_ERROR"

    def __init__(self, details: list[str] | str, code: str | None = None):
        if isinstance(details, str):
            details = [details]
        if code is not None:
            self.code = code
        self.details = details
        super().__init__(f"{self.code}: {'; '.join(details)}")


class InvalidIntervalError(PlanSchedulingError):
    """Raised when a minute interval violates 0 <= start < end <= 1440."""

    code = "INVALID_INTERVAL"


class SelectionConflictError(PlanSchedulingError):
    """Raised when a finished selection cannot be committed."""

    code = "SELECTION_CONFLICT"


class PlanNotFoundError(PlanSchedulingError):
    """Raised when the repository has no plan with the given id."""

    code = "PLAN_NOT_FOUND"

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"No plan with id={plan_id}")


class GroupMutationError(PlanSchedulingError):
    """Aggregate failure of a group mutation.

    Raised once per failed mutation, chained to the repository error that
    caused it. Already-applied repository calls are not rolled back by the
    mutator. After a failed edit, retry with
    OccurrenceGroupMutator.regenerate_group(persisted_occurrence, today): the
    edited occurrence already carries its new repeat mode, and regeneration
    always recomputes the full target day set.

    Attributes:
        group_id: Group being mutated (None for ungrouped plans)
        stage: Step that failed (e.g., "delete_siblings", "create_siblings")
        plan_id: Occurrence the mutation was applied to, if any
    """

    code = "GROUP_MUTATION_FAILED"

    def __init__(
        self,
        stage: str,
        group_id: str | None = None,
        plan_id: str | None = None,
        cause: BaseException | None = None,
    ):
        self.stage = stage
        self.group_id = group_id
        self.plan_id = plan_id
        details = [f"stage={stage}", f"group_id={group_id}"]
        if plan_id is not None:
            details.append(f"plan_id={plan_id}")
        if cause is not None:
            details.append(f"cause={cause!r}")
        super().__init__(details)
