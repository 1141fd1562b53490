import asyncio
from contextlib import asynccontextmanager
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from gidgethub import aiohttp as gh_aiohttp
import aiohttp
import cachetools

from gatekeeper import config
from gatekeeper.checks import (
    UnknownRequiredChecks,
    classify,
    format_check_table,
    select_checks,
)
from gatekeeper.config import get_input
from gatekeeper.github import (
    Outcome,
    PullRequestResolver,
    fetch_check_runs,
    process_workflow_run,
    resolve_required_checks,
)
from gatekeeper.github.api import API
from gatekeeper.github.model import ExecutionContext
from gatekeeper.logger import configure_logging
from gatekeeper.metric import push_metrics
from gatekeeper.model import UserInputs

logger = logging.getLogger("gatekeeper")

app = typer.Typer()
httpcache = cachetools.LRUCache(maxsize=500)


@app.callback()
def init():
    configure_logging()


@asynccontextmanager
async def github_client(token: str):
    async with aiohttp.ClientSession() as session:
        yield gh_aiohttp.GitHubAPI(
            session,
            "gatekeeper",
            oauth_token=token,
            cache=httpcache,
            base_url=config.GITHUB_API_URL,
        )


def load_event(path: Path) -> Dict[str, Any]:
    with open(path) as fh:
        return json.load(fh)


async def handle_workflow_run(
    ctx: ExecutionContext, token: str, inputs: UserInputs
) -> Outcome:
    async with github_client(token) as gh:
        api = API(gh)
        result = await process_workflow_run(ctx, api, inputs, dry_run=config.DRY_RUN)
    return result.outcome


@app.command()
def run(
    event_path: Optional[Path] = typer.Option(
        None,
        "--event-path",
        help="workflow_run event payload, defaults to $GITHUB_EVENT_PATH",
    ),
):
    """
    Inspect the check runs of the PR a workflow run belongs to and request
    reviews or assign the PR accordingly.
    """
    try:
        token = get_input("token", required=True)
        inputs = UserInputs.from_environment()

        path = event_path or config.GITHUB_EVENT_PATH
        if path is None:
            raise ValueError("No event payload: GITHUB_EVENT_PATH is not set")
        ctx = ExecutionContext.from_event(load_event(Path(path)))

        outcome = asyncio.run(handle_workflow_run(ctx, token, inputs))
    except Exception as e:
        logger.error("%s", e)
        logger.debug("Run failed", exc_info=True)
        raise typer.Exit(code=1)
    finally:
        push_metrics()

    if outcome == Outcome.incomplete:
        logger.info("Checks are not complete yet, a later run will pick this up.")
    logger.info("Completed.")


@app.command()
def inspect(
    repo: str,
    number: int,
    token: str = typer.Option(..., envvar="GITHUB_TOKEN"),
):
    """
    Show the check runs of a PR's head commit and how they classify, without
    assigning or requesting reviews.
    """
    inputs = UserInputs.from_environment()

    async def handle():
        async with github_client(token) as gh:
            api = API(gh)
            repository = await api.get_repository(repo)
            pr = await api.get_pull(repository, number)
            ctx = ExecutionContext.model_validate(
                {
                    "repository": repository,
                    "workflow_run": {
                        "head_sha": pr.head.sha,
                        "display_title": pr.title,
                        "pull_requests": [pr],
                    },
                }
            )
            resolver = PullRequestResolver(ctx, api)

            check_runs = await fetch_check_runs(api, repository, ctx.head_sha)
            if inputs.required_checks_only:
                required = await resolve_required_checks(api, repository, resolver)
            else:
                required = UnknownRequiredChecks("required checks not requested")
            selected = select_checks(check_runs, inputs.required_checks_only, required)
            status = classify(
                selected,
                inputs.acceptable_conclusions,
                inputs.unacceptable_conclusions,
            )

            typer.echo(f"{pr} ({pr.state}): {pr.title}")
            typer.echo(f"Required checks: {required}")
            typer.echo(format_check_table(selected))
            typer.echo(
                f"complete={status.complete} "
                f"acceptable={status.acceptable} "
                f"unacceptable={status.unacceptable}"
            )

    asyncio.run(handle())
