"""
Immutable engine settings, built from the ConfigService or defaults.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from slateink.editor.annotations import MIN_ANNOTATION_SIZE, AnnotationType
from slateink.editor.tools import DEFAULT_TOOL_CONFIGS, ToolConfig, tool_configs_from_overrides
from slateink.services.config_service import DEFAULT_CONFIG, ConfigService
from slateink.services.logging_service import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    min_annotation_size: float = MIN_ANNOTATION_SIZE
    nudge_group_ms: int = 350
    duplicate_offset_px: float = 12
    nudge_step_px: float = 1
    nudge_large_step_px: float = 10
    hit_tolerance_px: float = 6
    handle_radius_px: float = 5
    simplify_tolerance: float = 1.5
    toolbar_padding: float = 8
    toolbar_handle_padding: float = 12
    toolbar_default_width: float = 120
    toolbar_default_height: float = 36
    dark_theme: bool = False
    tool_configs: Dict[AnnotationType, ToolConfig] = field(
        default_factory=lambda: dict(DEFAULT_TOOL_CONFIGS)
    )

    def tool_config(self, tool: AnnotationType) -> ToolConfig:
        return self.tool_configs.get(tool, ToolConfig())

    @classmethod
    def from_config(cls, config: ConfigService) -> "EngineSettings":
        """Read settings, falling back to defaults for invalid values."""
        toolbar = config.toolbar
        defaults = DEFAULT_CONFIG["toolbar"]
        return cls(
            min_annotation_size=_positive(config, "min_annotation_size"),
            nudge_group_ms=int(_positive(config, "nudge_group_ms")),
            duplicate_offset_px=_number(config.get("duplicate_offset_px"), DEFAULT_CONFIG["duplicate_offset_px"]),
            nudge_step_px=_positive(config, "nudge_step_px"),
            nudge_large_step_px=_positive(config, "nudge_large_step_px"),
            hit_tolerance_px=_positive(config, "hit_tolerance_px"),
            handle_radius_px=_positive(config, "handle_radius_px"),
            simplify_tolerance=_positive(config, "simplify_tolerance"),
            toolbar_padding=_number(toolbar.get("padding"), defaults["padding"]),
            toolbar_handle_padding=_number(toolbar.get("handle_padding"), defaults["handle_padding"]),
            toolbar_default_width=_number(toolbar.get("default_width"), defaults["default_width"]),
            toolbar_default_height=_number(toolbar.get("default_height"), defaults["default_height"]),
            dark_theme=config.dark_theme,
            tool_configs=tool_configs_from_overrides(config.tools),
        )


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return float(default)
    return float(value)


def _positive(config: ConfigService, key: str) -> float:
    default = DEFAULT_CONFIG[key]
    value = _number(config.get(key), default)
    if value <= 0:
        logger.warning(f"Config key '{key}' must be positive, using {default}")
        return float(default)
    return value
