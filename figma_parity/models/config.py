"""Configuration models for the capture/compare tool."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_FALLBACK_SELECTOR = "#benchmark-container-for-screenshot"
DEFAULT_SNAPDOM_URL = "https://unpkg.com/@zumer/snapdom@1.9.5/dist/snapdom.mjs"
CONFIG_ENV_VAR = "FIGMA_PARITY_CONFIG"


class ViewportConfig(BaseModel):
    width: int = Field(default=1440, gt=0)
    height: int = Field(default=800, gt=0)


class CaptureOptions(BaseModel):
    """Options handed to the in-page DOM-to-raster serializer."""

    scale: float = Field(default=3.0, gt=0, le=8)
    compress: bool = True
    fast: bool = False
    embed_fonts: bool = True
    background_color: str = "transparent"
    # Reference images carry no padding, so anything but 0 shifts alignment.
    padding: int = Field(default=0, ge=0)
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)


class BrowserConfig(BaseModel):
    headless: bool = True
    executable_path: Optional[str] = Field(default=None, validate_default=True)
    max_pages: int = Field(default=4, ge=1)
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-accelerated-2d-canvas",
            "--no-first-run",
            "--disable-gpu",
        ]
    )

    @field_validator("executable_path", mode="before")
    @classmethod
    def resolve_env_executable(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        if v is None:
            return os.environ.get("CHROME_EXECUTABLE_PATH") or None
        return v


class TimeoutConfig(BaseModel):
    """Per-stage time budgets in seconds."""

    launch: float = 30.0
    server_check: float = 3.0
    navigation: float = 10.0
    selector: float = 3.0
    capture: float = 15.0
    page_reset: float = 2.0
    overall: float = 60.0


class DevServerConfig(BaseModel):
    host: str = "localhost"
    retries: int = Field(default=4, ge=0)
    backoff_initial: float = 0.5
    backoff_factor: float = 2.0
    backoff_max: float = 4.0


class ComparisonConfig(BaseModel):
    threshold: float = Field(default=0.02, ge=0, le=1)
    # Ceiling that a requested threshold may never exceed.
    max_threshold: float = Field(default=0.1, ge=0, le=1)
    include_aa: bool = False
    alpha: float = Field(default=0.1, ge=0, le=1)
    diff_color: tuple[int, int, int] = (255, 0, 0)
    diff_color_alt: Optional[tuple[int, int, int]] = (255, 128, 0)
    aa_color: tuple[int, int, int] = (255, 255, 0)
    max_resize_factor: float = Field(default=8.0, ge=1)


class AnalysisConfig(BaseModel):
    min_region_pixels: int = Field(default=3, ge=1)
    material_min_pixels: int = 64
    material_min_fill: float = 0.6
    material_min_area_ratio: float = 0.05
    font_max_pixels: int = 400
    font_max_fill: float = 0.5
    text_box_margin: int = 2
    max_reported_regions: int = 50


class ComponentEntry(BaseModel):
    route: Optional[str] = None
    selector: Optional[str] = None


class ToolConfig(BaseModel):
    # Project layout
    project_path: str = "."
    results_dir_template: str = "src/components/{component}/results"

    # Dev server
    port: int = Field(default=83, gt=0, lt=65536)
    dev_server: DevServerConfig = Field(default_factory=DevServerConfig)

    # Capture
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    capture: CaptureOptions = Field(default_factory=CaptureOptions)
    fallback_selector: str = DEFAULT_FALLBACK_SELECTOR
    snapdom_url: str = DEFAULT_SNAPDOM_URL
    settle_ms: int = 500

    # Browser
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)

    # Comparison / analysis
    comparison: ComparisonConfig = Field(default_factory=ComparisonConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    quality_gate: str = "perfect"

    # Reporting
    report_formats: list[str] = Field(default_factory=lambda: ["json", "markdown"])

    # Component registry
    components: dict[str, ComponentEntry] = Field(default_factory=dict)
    strict_components: bool = False

    @field_validator("quality_gate")
    @classmethod
    def check_quality_gate(cls, v: str) -> str:
        tiers = ("perfect", "excellent", "good", "needs-improvement", "poor", "failing")
        if v not in tiers:
            raise ValueError(f"quality_gate must be one of {', '.join(tiers)}")
        return v

    @field_validator("report_formats")
    @classmethod
    def check_report_formats(cls, v: list[str]) -> list[str]:
        unknown = set(v) - {"json", "markdown"}
        if unknown:
            raise ValueError(f"Unsupported report formats: {', '.join(sorted(unknown))}")
        return v

    @model_validator(mode="after")
    def check_threshold_ceiling(self) -> "ToolConfig":
        if self.comparison.threshold > self.comparison.max_threshold:
            raise ValueError(
                f"comparison.threshold {self.comparison.threshold} exceeds "
                f"comparison.max_threshold {self.comparison.max_threshold}"
            )
        return self

    def results_dir(self, component: str, project_path: str | None = None) -> Path:
        root = Path(project_path or self.project_path)
        return root / self.results_dir_template.format(component=component)

    @classmethod
    def load(cls, path: str | Path) -> "ToolConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def load_default(cls, path: str | Path | None = None) -> "ToolConfig":
        """Load from ``path`` or $FIGMA_PARITY_CONFIG, falling back to defaults."""
        candidate = path or os.environ.get(CONFIG_ENV_VAR)
        if candidate and Path(candidate).exists():
            return cls.load(candidate)
        if candidate and path:
            raise FileNotFoundError(f"Config file not found: {candidate}")
        return cls()

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
