from typing import Any, AsyncIterator, Dict, List
from gidgethub.abc import GitHubAPI

from gatekeeper.github.model import (
    CheckRun,
    PullRequest,
    Repository,
    RequiredStatusChecks,
)
from gatekeeper.metric import record_api_call

import logging

logger = logging.getLogger("gatekeeper")


class API:
    gh: GitHubAPI

    call_count: int

    def __init__(self, gh: GitHubAPI):
        self.gh = gh
        self.call_count = 0

    def _count(self, url: str) -> None:
        self.call_count += 1
        record_api_call(url)

    async def get_repository(self, full_name: str) -> Repository:
        url = f"/repos/{full_name}"
        self._count(url)
        return Repository.model_validate(await self.gh.getitem(url))

    async def get_pulls(
        self,
        repo: Repository,
        state: str = "all",
        sort: str = "updated",
        direction: str = "desc",
        per_page: int = 100,
        max_pages: int = 10,
    ) -> AsyncIterator[PullRequest]:
        url = (
            f"{repo.url}/pulls?state={state}&sort={sort}"
            f"&direction={direction}&per_page={per_page}"
        )
        logger.debug("Get pulls %s", url)
        self._count(url)
        pages = 1
        count = 0
        async for item in self.gh.getiter(url):
            if count > 0 and count % per_page == 0:
                pages += 1
                self._count(url)
            count += 1
            yield PullRequest.model_validate(item)
            # stop before the next page is requested
            if count >= per_page * max_pages:
                logger.info("Stopped reading pulls of %s after %d pages", repo, pages)
                return
        logger.debug("Read %d pulls of %s in %d pages", count, repo, pages)

    async def get_pull(self, repo: Repository, number: int) -> PullRequest:
        url = f"{repo.url}/pulls/{number}"
        self._count(url)
        logger.debug("Get pull %s", url)
        item = await self.gh.getitem(url)
        return PullRequest.model_validate(item)

    async def get_check_runs_for_ref(
        self, repo: Repository, ref: str
    ) -> AsyncIterator[CheckRun]:
        url = f"{repo.url}/commits/{{ref}}/check-runs"
        self._count(url)
        logger.debug("Get check runs for ref %s @ %s", repo, ref)
        async for item in self.gh.getiter(
            url, {"ref": ref}, iterable_key="check_runs"
        ):
            yield CheckRun.model_validate(item)

    async def get_required_status_checks(
        self, repo: Repository, branch: str
    ) -> RequiredStatusChecks:
        url = f"{repo.url}/branches/{{branch}}/protection/required_status_checks"
        self._count(url)
        logger.debug("Get required status checks for %s @ %s", repo, branch)
        item = await self.gh.getitem(url, {"branch": branch})
        return RequiredStatusChecks.model_validate(item)

    async def add_assignees(
        self, repo: Repository, number: int, assignees: List[str]
    ) -> Dict[str, Any]:
        url = f"{repo.url}/issues/{number}/assignees"
        self._count(url)
        logger.debug("Add assignees %s to %s", assignees, url)
        return await self.gh.post(url, data={"assignees": assignees})

    async def request_reviewers(
        self, repo: Repository, number: int, reviewers: List[str]
    ) -> Dict[str, Any]:
        url = f"{repo.url}/pulls/{number}/requested_reviewers"
        self._count(url)
        logger.debug("Request reviewers %s on %s", reviewers, url)
        return await self.gh.post(url, data={"reviewers": reviewers})
