from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, AbstractSet, Iterable, List, Sequence, Tuple, Union

from tabulate import tabulate

if TYPE_CHECKING:
    from gatekeeper.github.model import CheckRun

logger = logging.getLogger("gatekeeper")


@dataclass(frozen=True)
class KnownRequiredChecks:
    names: Tuple[str, ...]

    @classmethod
    def from_contexts(cls, contexts: Iterable[str]) -> "KnownRequiredChecks":
        # keep the policy's order, drop repeats
        return cls(names=tuple(dict.fromkeys(contexts)))

    def __contains__(self, name: str) -> bool:
        return name in self.names


@dataclass(frozen=True)
class UnknownRequiredChecks:
    reason: str


RequiredChecks = Union[KnownRequiredChecks, UnknownRequiredChecks]


@dataclass(frozen=True)
class CheckRunStatus:
    complete: bool
    acceptable: bool
    unacceptable: bool


def select_checks(
    check_runs: Sequence[CheckRun],
    required_only: bool,
    required: RequiredChecks,
) -> List[CheckRun]:
    if not required_only:
        return list(check_runs)
    if isinstance(required, UnknownRequiredChecks):
        logger.debug(
            "Required checks unknown (%s), considering all check runs",
            required.reason,
        )
        return list(check_runs)
    return [cr for cr in check_runs if cr.name in required]


def classify(
    selected: Sequence[CheckRun],
    acceptable: AbstractSet[str],
    unacceptable: AbstractSet[str],
) -> CheckRunStatus:
    completed = [cr for cr in selected if cr.is_completed]

    acceptable_runs = [cr for cr in completed if (cr.conclusion or "") in acceptable]
    unacceptable_runs = [
        cr for cr in completed if (cr.conclusion or "") in unacceptable
    ]

    logger.debug(
        "acceptableConclusionChecks:   %s", [cr.name for cr in acceptable_runs]
    )
    logger.debug(
        "unacceptableConclusionChecks: %s", [cr.name for cr in unacceptable_runs]
    )

    return CheckRunStatus(
        complete=len(completed) == len(selected),
        acceptable=len(acceptable_runs) == len(completed),
        unacceptable=len(unacceptable_runs) > 0,
    )


def format_check_table(check_runs: Sequence[CheckRun]) -> str:
    rows = [
        (idx, cr.status, cr.conclusion or "", cr.name)
        for idx, cr in enumerate(check_runs)
    ]
    return tabulate(rows, headers=("#", "Status", "Conclusion", "Check"))
