"""Capture request/result data structures."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from figma_parity.models.config import CaptureOptions, ViewportConfig


class BoundingBox(BaseModel):
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def expanded(self, margin: int) -> "BoundingBox":
        return BoundingBox(
            x=self.x - margin,
            y=self.y - margin,
            width=self.width + 2 * margin,
            height=self.height + 2 * margin,
        )

    def intersects(self, other: "BoundingBox") -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )


class CaptureRequest(BaseModel):
    """One capture invocation. Frozen once issued."""

    model_config = ConfigDict(frozen=True)

    component_name: str = Field(min_length=1)
    port: int = Field(default=83, gt=0, lt=65536)
    host: str = "localhost"
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    options: CaptureOptions = Field(default_factory=CaptureOptions)
    output_path: str
    selector: Optional[str] = None
    route: Optional[str] = None

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def url(self) -> str:
        route = self.route or f"/component/{self.component_name}"
        return f"{self.base_url}{route}"


class CaptureResult(BaseModel):
    path: str
    url: str
    selector: str
    used_fallback_selector: bool = False
    viewport: ViewportConfig
    options: CaptureOptions
    method: str = "snapdom"
    width: int
    height: int
    element_box: Optional[BoundingBox] = None
    text_boxes: list[BoundingBox] = Field(default_factory=list)
    duration_ms: int = 0
    image_bytes: Optional[bytes] = Field(default=None, exclude=True, repr=False)
