"""Tests for the error taxonomy and launch error classification."""

import pytest

from figma_parity.errors import (
    AvailabilityError,
    LaunchError,
    MemoryLaunchError,
    NavigationTimeoutError,
    NetworkLaunchError,
    ParityError,
    PermissionLaunchError,
    SelectorNotFoundError,
    StageTimeoutError,
    ThresholdPolicyError,
    TimeoutLaunchError,
    classify_launch_error,
)


class TestToResponse:
    def test_failure_shape(self):
        response = AvailabilityError("Dev server down").to_response()
        assert response["success"] is False
        assert response["error"] == "Dev server down"
        assert response["errorType"] == "availability"
        assert response["solutions"]

    def test_solutions_omitted_when_empty(self):
        response = ParityError("boom").to_response()
        assert "solutions" not in response
        assert response["errorType"] == "error"

    def test_explicit_solutions_override_defaults(self):
        error = SelectorNotFoundError("missing", solutions=["Check the route"])
        assert error.solutions == ["Check the route"]

    def test_context_kept(self):
        error = AvailabilityError("down", url="http://localhost:83", attempts=3)
        assert error.context == {"url": "http://localhost:83", "attempts": 3}


class TestClassifyLaunchError:
    @pytest.mark.parametrize(
        "exc, expected",
        [
            (Exception("net::ERR_CONNECTION_REFUSED ECONNREFUSED"), NetworkLaunchError),
            (Exception("spawn EACCES"), PermissionLaunchError),
            (PermissionError("denied"), PermissionLaunchError),
            (Exception("Timeout 30000ms exceeded"), TimeoutLaunchError),
            (Exception("Cannot allocate memory"), MemoryLaunchError),
            (MemoryError(), MemoryLaunchError),
            (Exception("something odd"), LaunchError),
        ],
    )
    def test_classification(self, exc, expected):
        error = classify_launch_error(exc)
        assert type(error) is expected
        assert error.message.startswith("Failed to launch browser")

    def test_subtypes_have_distinct_solutions(self):
        solutions = {
            cls.error_type: tuple(cls("x").solutions)
            for cls in (NetworkLaunchError, PermissionLaunchError, TimeoutLaunchError, MemoryLaunchError)
        }
        assert len(set(solutions.values())) == 4

    def test_launch_error_passes_through(self):
        original = MemoryLaunchError("oom")
        assert classify_launch_error(original) is original


class TestStageTimeoutError:
    def test_default_message(self):
        error = StageTimeoutError("capture", 15)
        assert error.message == "capture timed out after 15.0s"
        assert error.stage == "capture"

    def test_navigation_subtype(self):
        error = NavigationTimeoutError("navigation", 10, "Navigation to /x timed out")
        assert isinstance(error, StageTimeoutError)
        assert error.to_response()["errorType"] == "navigation_timeout"


def test_threshold_policy_is_validation_error():
    error = ThresholdPolicyError("too loose", field="threshold")
    assert error.field == "threshold"
    assert error.to_response()["errorType"] == "threshold_policy"
