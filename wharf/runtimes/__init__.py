"""Post-processing strategies keyed by application type."""

from __future__ import annotations

from collections.abc import Callable

from wharf.config import PipelineConfig
from wharf.errors import ValidationError
from wharf.models.deployment import AppType
from wharf.runtimes.base import BaseRuntime, GenericRuntime, PostProcessOutcome
from wharf.runtimes.node import NodeRuntime


def parse_app_type(value: str | None) -> AppType:
    """Parse the request's "type" field; empty means generic."""
    if not value:
        return AppType.GENERIC
    try:
        return AppType(value.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unsupported application type: {value}",
            details={"type": value, "supported": [t.value for t in AppType]},
        ) from None


_RUNTIMES: dict[AppType, Callable[[PipelineConfig], BaseRuntime]] = {
    AppType.GENERIC: lambda config: GenericRuntime(),
    AppType.NODE: NodeRuntime,
}


def get_runtime(app_type: AppType, config: PipelineConfig) -> BaseRuntime:
    """Return the post-processing strategy for an application type."""
    return _RUNTIMES[app_type](config)


__all__ = [
    "BaseRuntime",
    "GenericRuntime",
    "NodeRuntime",
    "PostProcessOutcome",
    "get_runtime",
    "parse_app_type",
]
