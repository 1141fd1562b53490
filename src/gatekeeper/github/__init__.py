import asyncio
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
import logging
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from gidgethub import BadRequest
import humanize

from gatekeeper.checks import (
    CheckRunStatus,
    KnownRequiredChecks,
    RequiredChecks,
    UnknownRequiredChecks,
    classify,
    format_check_table,
    select_checks,
)
from gatekeeper.github.api import API
from gatekeeper.github.model import (
    CheckRun,
    ExecutionContext,
    PartialPullRequest,
    Repository,
)
from gatekeeper.logger import group, log_json
from gatekeeper.metric import action_counter, outcome_counter
from gatekeeper.model import UserInputs

logger = logging.getLogger("gatekeeper")

Sleep = Callable[[float], Awaitable[Any]]


class Outcome(Enum):
    incomplete = 1
    acted = 2
    nothing_to_do = 3
    skipped_closed = 4


@dataclass(frozen=True)
class ActionResult:
    action: str
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class RunResult:
    outcome: Outcome
    actions: Tuple[ActionResult, ...] = ()


class PullRequestNotFound(Exception):
    title: str
    strategy: str

    def __init__(self, title: str, strategy: Optional[str] = None):
        self.title = title
        self.strategy = strategy or (
            "workflow_run.pull_requests[0], then pulls sorted by last update"
        )
        super().__init__(
            f"NO PR FOUND (searched in {self.strategy} for title: {title})"
        )


class PullRequestResolver:
    """
    Resolves the pull request a workflow run belongs to. The result is kept on
    the instance, so one resolver per run issues at most one search.
    """

    def __init__(self, ctx: ExecutionContext, api: API):
        self.ctx = ctx
        self.api = api
        self._pr: Optional[PartialPullRequest] = None

    async def resolve(self) -> PartialPullRequest:
        if self._pr is None:
            logger.debug("PR not yet resolved; fetching...")
            self._pr = await self._fetch()
        else:
            logger.debug("PR already resolved; reusing %s", self._pr)
        return self._pr

    async def _fetch(self) -> PartialPullRequest:
        if len(self.ctx.pull_requests) > 0:
            pr = self.ctx.pull_requests[0]
            logger.debug("Found %s in workflow_run.pull_requests", pr)
            return pr

        # workflow runs triggered from forks carry no pull requests, fall back
        # to the most recently updated PR with the run's display title
        title = self.ctx.display_title
        logger.info("No PR attached to workflow run, searching for title %r", title)
        async for pr in self.api.get_pulls(self.ctx.repository):
            if pr.title == title:
                log_json(pr.model_dump(mode="json"), "resolve() > pull request")
                return pr

        raise PullRequestNotFound(title)

    async def is_open(self, number: int) -> bool:
        pr = await self.api.get_pull(self.ctx.repository, number)
        return pr.state == "open"


async def fetch_check_runs(api: API, repo: Repository, ref: str) -> List[CheckRun]:
    logger.info("Retrieving check runs for %s@%s...", repo, ref)
    check_runs = [cr async for cr in api.get_check_runs_for_ref(repo, ref)]
    logger.info("Retrieved %d check runs.", len(check_runs))
    log_json(
        [cr.model_dump(mode="json") for cr in check_runs],
        "fetch_check_runs() > check runs",
    )
    return check_runs


async def resolve_required_checks(
    api: API, repo: Repository, resolver: PullRequestResolver
) -> RequiredChecks:
    pr = await resolver.resolve()
    base_ref = pr.base.ref if pr.base is not None else None
    logger.info("Base Ref: %s", base_ref)
    if base_ref is None:
        logger.error("Error getting base ref for %s.", pr)
        return UnknownRequiredChecks("base ref unknown")

    try:
        logger.info(
            "Retrieving branch protection information for %s@%s...", repo, base_ref
        )
        policy = await api.get_required_status_checks(repo, base_ref)
    except BadRequest as e:
        if e.status_code == 404:
            logger.warning(
                "[%s] %s@%s has no required status checks. "
                "Proceeding assuming there are no required checks.",
                e,
                repo,
                base_ref,
            )
            return UnknownRequiredChecks("no required status checks policy")
        logger.warning(
            "[%s] Error getting required checks for %s@%s. "
            "Proceeding assuming there are no required checks.",
            e,
            repo,
            base_ref,
        )
        return UnknownRequiredChecks(str(e))
    except Exception as e:
        logger.warning(
            "Error getting required checks for %s@%s -- %r. "
            "Proceeding assuming there are no required checks.",
            repo,
            base_ref,
            e,
            exc_info=True,
        )
        return UnknownRequiredChecks(repr(e))

    log_json(policy.model_dump(), "resolve_required_checks() > policy")
    return KnownRequiredChecks.from_contexts(policy.contexts)


async def _attempt(
    action: str,
    description: str,
    call: Callable[[], Awaitable[Any]],
    dry_run: bool,
) -> ActionResult:
    if dry_run:
        logger.info("DRY_RUN: skipping %s", description)
        return ActionResult(action=action, ok=True)
    try:
        response = await call()
    except Exception as e:
        logger.warning("[%s] Error %s", e, description)
        action_counter.labels(action=action, result="error").inc()
        return ActionResult(action=action, ok=False, error=str(e))
    log_json(response, f"{action} > response")
    action_counter.labels(action=action, result="ok").inc()
    return ActionResult(action=action, ok=True)


async def assign_and_request_reviewers(
    api: API,
    repo: Repository,
    number: int,
    assignees: List[str],
    reviewers: List[str],
    dry_run: bool = False,
) -> List[ActionResult]:
    results = []

    if len(assignees) > 0:
        logger.info("Setting Assignees for PR #%d to: %s", number, ",".join(assignees))
        results.append(
            await _attempt(
                "assign",
                f"assigning PR #{number} to: [{','.join(assignees)}]",
                lambda: api.add_assignees(repo, number, assignees),
                dry_run,
            )
        )
    else:
        logger.info("Assignees not set. Skipping PR assignment...")

    if len(reviewers) > 0:
        logger.info(
            "Requesting Reviewers for PR #%d to: %s", number, ",".join(reviewers)
        )
        results.append(
            await _attempt(
                "request_reviewers",
                f"requesting reviewer(s) on PR #{number} to: [{','.join(reviewers)}]",
                lambda: api.request_reviewers(repo, number, reviewers),
                dry_run,
            )
        )
    else:
        logger.info("Reviewers not set. Skipping requesting review...")

    return results


async def dispatch(
    api: API,
    repo: Repository,
    number: int,
    status: CheckRunStatus,
    inputs: UserInputs,
    sleep: Sleep = asyncio.sleep,
    dry_run: bool = False,
) -> RunResult:
    check = inputs.check_label
    delay = inputs.delay_before_requesting_reviews

    async def act() -> RunResult:
        actions = await assign_and_request_reviewers(
            api, repo, number, inputs.assignees, inputs.reviewers, dry_run=dry_run
        )
        return RunResult(Outcome.acted, tuple(actions))

    if status.acceptable and delay > 0:
        logger.info(
            "All %s runs have acceptable conclusions. Waiting for %s...",
            check,
            humanize.naturaldelta(timedelta(seconds=delay)),
        )
        await sleep(delay)
        logger.info("Finished waiting for %d seconds.", delay)
        return await act()
    elif status.unacceptable:
        logger.info("Some %s runs have unacceptable conclusions.", check)
        return await act()
    else:
        # acceptable without a delay is left alone, only the delay gate acts on success
        logger.info("Nothing to do.")
        return RunResult(Outcome.nothing_to_do)


def _log_inputs(inputs: UserInputs) -> None:
    logger.debug("Inputs:")
    logger.debug("=======")
    logger.debug(
        "acceptableConclusions:        %s",
        ",".join(sorted(inputs.acceptable_conclusions)),
    )
    logger.debug(
        "unacceptableConclusions:      %s",
        ",".join(sorted(inputs.unacceptable_conclusions)),
    )
    logger.debug("assignees:                    %s", ",".join(inputs.assignees))
    logger.debug("reviewers:                    %s", ",".join(inputs.reviewers))
    logger.debug("requiredChecksOnly:           %s", inputs.required_checks_only)
    logger.debug(
        "delayBeforeRequestingReviews: %d", inputs.delay_before_requesting_reviews
    )
    for conclusion in inputs.unknown_conclusions():
        logger.warning("Unknown check conclusion in inputs: %s", conclusion)


async def process_workflow_run(
    ctx: ExecutionContext,
    api: API,
    inputs: UserInputs,
    sleep: Sleep = asyncio.sleep,
    dry_run: bool = False,
) -> RunResult:
    check = inputs.check_label
    repo = ctx.repository
    resolver = PullRequestResolver(ctx, api)

    with group("Gathering inputs..."):
        log_json(ctx.model_dump(mode="json"), "execution context")
        pr = await resolver.resolve()
        logger.info("PR #: %d", pr.number)
        _log_inputs(inputs)

    with group(f"Getting {check}s to check..."):
        check_runs = await fetch_check_runs(api, repo, ctx.head_sha)
        if inputs.required_checks_only:
            required = await resolve_required_checks(api, repo, resolver)
        else:
            required = UnknownRequiredChecks("required checks not requested")
        selected = select_checks(check_runs, inputs.required_checks_only, required)
        logger.info("%ss to check:\n%s", check, format_check_table(selected))

    with group(f"Computing {check} run status..."):
        status = classify(
            selected, inputs.acceptable_conclusions, inputs.unacceptable_conclusions
        )
        completed = len([cr for cr in selected if cr.is_completed])
        logger.info("Found %d completed %ss", completed, check)
        if not status.complete:
            logger.warning("All %s runs have *NOT* completed. Exiting.", check)
            outcome_counter.labels(outcome=Outcome.incomplete.name).inc()
            return RunResult(Outcome.incomplete)
        logger.info("All %s runs have completed.", check)
        logger.info("All %ss are Acceptable:   %s", check, status.acceptable)
        logger.info("Any %ss are Unacceptable: %s", check, status.unacceptable)

    if inputs.skip_closed_pull_requests and not await resolver.is_open(pr.number):
        logger.info("%s is not open, not taking any action", pr)
        outcome_counter.labels(outcome=Outcome.skipped_closed.name).inc()
        return RunResult(Outcome.skipped_closed)

    with group(f"Taking action on {pr}"):
        result = await dispatch(
            api, repo, pr.number, status, inputs, sleep=sleep, dry_run=dry_run
        )

    outcome_counter.labels(outcome=result.outcome.name).inc()
    logger.info("Finished handling %s, API calls: %d", pr, api.call_count)
    return result
