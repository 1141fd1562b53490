from typing import Any, Dict, List, Literal, Optional, Tuple

import pydantic


class Model(pydantic.BaseModel):
    pass


class Repository(Model):
    id: int
    name: str
    full_name: str
    url: str
    html_url: Optional[str] = None

    def __str__(self) -> str:
        return self.full_name


class PrConnection(Model):
    ref: str
    sha: Optional[str] = None


class PartialPullRequest(Model):
    number: int
    url: Optional[str] = None
    id: Optional[int] = None
    base: Optional[PrConnection] = None
    head: Optional[PrConnection] = None

    def __str__(self) -> str:
        return f"PR #{self.number}"


class PullRequest(PartialPullRequest):
    title: str
    state: Literal["open", "closed"]
    html_url: Optional[str] = None


class CheckRun(Model):
    id: Optional[int] = None
    name: str
    status: Literal[
        "queued", "in_progress", "completed", "waiting", "requested", "pending"
    ]
    conclusion: Optional[
        Literal[
            "action_required",
            "cancelled",
            "failure",
            "neutral",
            "success",
            "skipped",
            "stale",
            "timed_out",
        ]
    ] = None
    html_url: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class RequiredStatusChecks(Model):
    strict: bool = False
    contexts: List[str] = pydantic.Field(default_factory=list)


class WorkflowRun(Model):
    id: Optional[int] = None
    name: Optional[str] = None
    head_sha: str
    display_title: str
    pull_requests: List[PartialPullRequest] = pydantic.Field(default_factory=list)


class ExecutionContext(Model):
    """
    What a single run of the action knows about where it was triggered from:
    the repository and the ``workflow_run`` that completed.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    repository: Repository
    workflow_run: WorkflowRun

    @property
    def head_sha(self) -> str:
        return self.workflow_run.head_sha

    @property
    def display_title(self) -> str:
        return self.workflow_run.display_title

    @property
    def pull_requests(self) -> Tuple[PartialPullRequest, ...]:
        return tuple(self.workflow_run.pull_requests)

    @classmethod
    def from_event(cls, payload: Dict[str, Any]) -> "ExecutionContext":
        for key in ("repository", "workflow_run"):
            if key not in payload:
                raise ValueError(
                    f"Event payload has no '{key}'; "
                    "this action must be triggered by a workflow_run event"
                )
        return cls.model_validate(
            {
                "repository": payload["repository"],
                "workflow_run": payload["workflow_run"],
            }
        )
