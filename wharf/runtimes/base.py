"""Post-processing strategy base class.

After an artifact lands in its target directory, the declared application
type decides what happens next:
- GenericRuntime: nothing
- NodeRuntime: install dependencies, then run the deploy script

A runtime never fails the deployment. Files are already in place, so every
problem it hits is reported as a warning string.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from wharf.models.deployment import AppType


@dataclass
class PostProcessOutcome:
    """What post-processing did to a deployment."""

    message: str | None = None
    warning: str | None = None


class BaseRuntime(ABC):
    """Abstract post-processing strategy, one per AppType."""

    app_type: AppType

    @abstractmethod
    async def post_process(self, target_dir: Path) -> PostProcessOutcome:
        """Run the post-deploy steps inside target_dir."""
        ...


class GenericRuntime(BaseRuntime):
    """Plain file deployment, no post-processing."""

    app_type = AppType.GENERIC

    async def post_process(self, target_dir: Path) -> PostProcessOutcome:
        return PostProcessOutcome()
