from typing import FrozenSet, List, Mapping, Optional
import pydantic

from gatekeeper.config import get_input

ALL_VALID_CHECK_CONCLUSIONS = (
    "success",
    "failure",
    "neutral",
    "cancelled",
    "skipped",
    "timed_out",
    "action_required",
)


def split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip() != ""]


class Model(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(
        extra="forbid", frozen=True, populate_by_name=True
    )


class UserInputs(Model):
    acceptable_conclusions: FrozenSet[str] = pydantic.Field(
        frozenset(ALL_VALID_CHECK_CONCLUSIONS), alias="acceptableConclusions"
    )
    unacceptable_conclusions: FrozenSet[str] = pydantic.Field(
        frozenset(), alias="unacceptableConclusions"
    )
    assignees: List[str] = pydantic.Field(default_factory=list)
    reviewers: List[str] = pydantic.Field(default_factory=list)
    required_checks_only: bool = pydantic.Field(True, alias="requiredChecksOnly")
    delay_before_requesting_reviews: int = pydantic.Field(
        0, ge=0, alias="delayBeforeRequestingReviews"
    )
    skip_closed_pull_requests: bool = pydantic.Field(
        False, alias="skipClosedPullRequests"
    )

    @pydantic.field_validator(
        "acceptable_conclusions",
        "unacceptable_conclusions",
        "assignees",
        "reviewers",
        mode="before",
    )
    @classmethod
    def parse_csv(cls, value):
        if isinstance(value, str):
            return split_csv(value)
        return value

    @pydantic.field_validator(
        "required_checks_only", "skip_closed_pull_requests", mode="before"
    )
    @classmethod
    def parse_flag(cls, value):
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return value

    @property
    def check_label(self) -> str:
        return "required check" if self.required_checks_only else "check"

    def unknown_conclusions(self) -> List[str]:
        known = set(ALL_VALID_CHECK_CONCLUSIONS)
        configured = self.acceptable_conclusions | self.unacceptable_conclusions
        return sorted(c for c in configured if c not in known)

    @classmethod
    def from_environment(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "UserInputs":
        defaults = {
            "acceptableConclusions": ",".join(ALL_VALID_CHECK_CONCLUSIONS),
            "unacceptableConclusions": "",
            "assignees": "",
            "reviewers": "",
            "requiredChecksOnly": "true",
            "delayBeforeRequestingReviews": "0",
            "skipClosedPullRequests": "false",
        }
        return cls.model_validate(
            {
                name: get_input(name, default, environ=environ)
                for name, default in defaults.items()
            }
        )
