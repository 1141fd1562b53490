import pydantic
import pytest

from gatekeeper.config import MissingInput, get_input, input_variable
from gatekeeper.model import ALL_VALID_CHECK_CONCLUSIONS, UserInputs, split_csv


def test_input_variable_name():
    assert input_variable("token") == "INPUT_TOKEN"
    assert input_variable("delayBeforeRequestingReviews") == (
        "INPUT_DELAYBEFOREREQUESTINGREVIEWS"
    )
    assert input_variable("my input") == "INPUT_MY_INPUT"


def test_get_input_default_and_trim():
    environ = {"INPUT_REVIEWERS": "  alice  ", "INPUT_ASSIGNEES": "   "}
    assert get_input("reviewers", environ=environ) == "alice"
    assert get_input("assignees", "bob", environ=environ) == "bob"
    assert get_input("missing", "x", environ=environ) == "x"


def test_get_input_required():
    with pytest.raises(MissingInput) as excinfo:
        get_input("token", required=True, environ={})
    assert excinfo.value.name == "token"
    assert get_input("token", required=True, environ={"INPUT_TOKEN": "t"}) == "t"


def test_split_csv():
    assert split_csv("a, b,,c ,") == ["a", "b", "c"]
    assert split_csv(" , ") == []


def test_defaults():
    inputs = UserInputs.from_environment(environ={})

    assert inputs.acceptable_conclusions == frozenset(ALL_VALID_CHECK_CONCLUSIONS)
    assert inputs.unacceptable_conclusions == frozenset()
    assert inputs.assignees == []
    assert inputs.reviewers == []
    assert inputs.required_checks_only
    assert inputs.delay_before_requesting_reviews == 0
    assert not inputs.skip_closed_pull_requests
    assert inputs.check_label == "required check"


def test_from_environment():
    environ = {
        "INPUT_ACCEPTABLECONCLUSIONS": "success, skipped",
        "INPUT_UNACCEPTABLECONCLUSIONS": "failure,timed_out",
        "INPUT_ASSIGNEES": "alice,bob",
        "INPUT_REVIEWERS": "carol",
        "INPUT_REQUIREDCHECKSONLY": "false",
        "INPUT_DELAYBEFOREREQUESTINGREVIEWS": "30",
        "INPUT_SKIPCLOSEDPULLREQUESTS": "True",
    }
    inputs = UserInputs.from_environment(environ=environ)

    assert inputs.acceptable_conclusions == {"success", "skipped"}
    assert inputs.unacceptable_conclusions == {"failure", "timed_out"}
    assert inputs.assignees == ["alice", "bob"]
    assert inputs.reviewers == ["carol"]
    assert not inputs.required_checks_only
    assert inputs.delay_before_requesting_reviews == 30
    assert inputs.skip_closed_pull_requests
    assert inputs.check_label == "check"


def test_required_checks_only_anything_but_true_is_false():
    inputs = UserInputs.from_environment(environ={"INPUT_REQUIREDCHECKSONLY": "yes"})
    assert not inputs.required_checks_only


@pytest.mark.parametrize("delay", ["abc", "-5", "1.5"])
def test_invalid_delay(delay):
    with pytest.raises(pydantic.ValidationError):
        UserInputs.from_environment(
            environ={"INPUT_DELAYBEFOREREQUESTINGREVIEWS": delay}
        )


def test_inputs_are_frozen():
    inputs = UserInputs(reviewers=["carol"])
    with pytest.raises(pydantic.ValidationError):
        inputs.reviewers = ["dave"]


def test_unknown_conclusions():
    inputs = UserInputs(
        acceptable_conclusions={"success", "passed"},
        unacceptable_conclusions={"failure", "broken"},
    )
    assert inputs.unknown_conclusions() == ["broken", "passed"]
