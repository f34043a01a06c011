"""
Configuration Module - Tunables for region editing, text search and export
"""

import json
from dataclasses import dataclass, fields, asdict
from typing import Any, Dict


IMAGE_FORMATS = ("jpeg", "png")


@dataclass
class RedactConfig:
    """Runtime configuration shared by the store, locator and exporter"""

    # Smallest accepted region side, in percent of the page
    min_region_percent: float = 0.5

    # Text search
    min_query_length: int = 2
    search_padding: float = 2.0  # points
    ascent_factor: float = 0.2
    line_height_factor: float = 1.5

    # Pixels per point of the interactive preview
    preview_scale: float = 1.0

    # Export
    render_scale: float = 2.0
    image_format: str = "jpeg"
    jpeg_quality: int = 90
    label_height_ratio: float = 0.6
    filename_prefix: str = "redacted_"
    scrub_metadata: bool = True
    producer: str = "secureredact"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges

        Raises:
            ValueError: if any setting is out of range
        """
        if self.render_scale < 2.0:
            raise ValueError(
                f"render_scale must be at least 2.0 to keep flattened text legible, "
                f"got {self.render_scale}"
            )
        if self.image_format not in IMAGE_FORMATS:
            raise ValueError(
                f"image_format must be one of {IMAGE_FORMATS}, got {self.image_format!r}"
            )
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be within 1..100, got {self.jpeg_quality}")
        if not 0 < self.min_region_percent < 100:
            raise ValueError("min_region_percent must be within (0, 100)")
        if self.min_query_length < 1:
            raise ValueError("min_query_length must be positive")
        if self.preview_scale <= 0:
            raise ValueError("preview_scale must be positive")
        if not 0 < self.label_height_ratio <= 1:
            raise ValueError("label_height_ratio must be within (0, 1]")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "RedactConfig":
        """
        Build a config from a plain dictionary

        Args:
            values: Mapping of setting names to values

        Returns:
            RedactConfig with defaults for missing keys

        Raises:
            ValueError: on unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: str) -> RedactConfig:
    """
    Load configuration from a JSON file

    Args:
        path: Path to JSON file with a flat object of settings

    Returns:
        RedactConfig instance
    """
    with open(path, "r") as f:
        values = json.load(f)

    if not isinstance(values, dict):
        raise ValueError(f"{path}: configuration must be a JSON object")

    return RedactConfig.from_dict(values)
