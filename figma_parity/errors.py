"""Error taxonomy shared by every stage of the capture/compare pipeline."""

from __future__ import annotations

from typing import Any


class ParityError(Exception):
    """Base class for all pipeline failures.

    ``error_type`` is the stable tag surfaced in tool responses and
    ``solutions`` an ordered list of remediation steps.
    """

    error_type = "error"
    default_solutions: tuple[str, ...] = ()

    def __init__(self, message: str, solutions: list[str] | None = None, **context: Any):
        super().__init__(message)
        self.message = message
        self.solutions = list(solutions) if solutions is not None else list(self.default_solutions)
        self.context = context

    def to_response(self) -> dict[str, Any]:
        response: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "errorType": self.error_type,
        }
        if self.solutions:
            response["solutions"] = self.solutions
        return response


# --- Browser launch -----------------------------------------------------------


class LaunchError(ParityError):
    error_type = "launch"
    default_solutions = (
        "Install the Playwright browser runtime: playwright install chromium",
        "Point browser.executable_path (or CHROME_EXECUTABLE_PATH) at a local Chrome",
        "Check that no stale Chromium process is holding the profile",
    )


class NetworkLaunchError(LaunchError):
    error_type = "launch.network"
    default_solutions = (
        "Check network connectivity and firewall settings",
        "Verify the internet connection used to download Chromium",
        "Retry on a different network or through a VPN",
    )


class PermissionLaunchError(LaunchError):
    error_type = "launch.permission"
    default_solutions = (
        "Check file system permissions on the browser install directory",
        "Run the tool as a user that may execute the browser binary",
        "Pass --no-sandbox only if the host does not support user namespaces",
    )


class TimeoutLaunchError(LaunchError):
    error_type = "launch.timeout"
    default_solutions = (
        "Increase timeouts.launch in the config file",
        "Check system resources (CPU/memory)",
        "Close other resource-intensive applications",
    )


class MemoryLaunchError(LaunchError):
    error_type = "launch.memory"
    default_solutions = (
        "Close other applications to free memory",
        "Lower browser.max_pages to reduce concurrent pages",
        "Keep browser.headless enabled to reduce memory usage",
    )


def classify_launch_error(exc: BaseException) -> LaunchError:
    """Map a raw launch exception onto the matching LaunchError subtype."""
    if isinstance(exc, LaunchError):
        return exc
    text = str(exc).lower()
    message = f"Failed to launch browser: {exc}"
    if isinstance(exc, MemoryError) or any(k in text for k in ("out of memory", "enomem", "cannot allocate")):
        return MemoryLaunchError(message)
    if isinstance(exc, PermissionError) or any(k in text for k in ("permission denied", "eacces", "eperm")):
        return PermissionLaunchError(message)
    if isinstance(exc, TimeoutError) or "timeout" in text or "timed out" in text:
        return TimeoutLaunchError(message)
    if any(k in text for k in ("econnrefused", "network", "enotfound", "download")):
        return NetworkLaunchError(message)
    return LaunchError(message)


# --- Dev server / capture -----------------------------------------------------


class AvailabilityError(ParityError):
    error_type = "availability"
    default_solutions = (
        "Start the component dev server (e.g. yarn dev) before capturing",
        "Check that the port argument matches the dev server port",
        "Verify the server answers 200 at its root URL",
    )


class CaptureError(ParityError):
    error_type = "capture"


class SelectorNotFoundError(CaptureError):
    error_type = "selector_not_found"
    default_solutions = (
        "Check that the component renders at /component/{name}",
        "Pass an explicit selector for the component root",
        "Wrap the component in #benchmark-container-for-screenshot",
    )


class UnknownComponentError(CaptureError):
    error_type = "unknown_component"


# --- Timeouts -----------------------------------------------------------------


class StageTimeoutError(ParityError):
    error_type = "timeout"

    def __init__(self, stage: str, seconds: float, message: str | None = None):
        super().__init__(message or f"{stage} timed out after {seconds:.1f}s", stage=stage, seconds=seconds)
        self.stage = stage
        self.seconds = seconds


class NavigationTimeoutError(StageTimeoutError):
    error_type = "navigation_timeout"


# --- Validation / comparison --------------------------------------------------


class ParityValidationError(ParityError):
    error_type = "validation"

    def __init__(self, message: str, field: str | None = None, **context: Any):
        super().__init__(message, field=field, **context)
        self.field = field


class ThresholdPolicyError(ParityValidationError):
    error_type = "threshold_policy"
    default_solutions = (
        "Fix the rendering difference instead of loosening the threshold",
        "Use a threshold at or below comparison.max_threshold",
    )


class FormatError(ParityValidationError):
    error_type = "format"


class ComparisonError(ParityError):
    error_type = "comparison"


class InternalError(ParityError):
    """An unexpected failure, surfaced so callers still get a response."""

    error_type = "internal"
