import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationLoadError, ResourceNotFoundError
from .utils import handle_errors

DEFAULT_NOISE_FILTER_FILE = Path(__file__).parent / "noise_filters.yaml"

logger = logging.getLogger(__name__)


def _lowered(values: Any, key: str) -> tuple[str, ...]:
    if values is None:
        return ()
    if not isinstance(values, list):
        msg = f"Noise filter section '{key}' must be a list"
        raise ValueError(msg)
    return tuple(str(value).strip().lower() for value in values if str(value).strip())


@dataclass(frozen=True)
class NoiseFilterConfig:
    """The single table of rules that mark an entry as automated noise.

    Loaded once and injected into the classifier, so the reply view, the
    live transcript and the poll loop all agree on what counts as noise.
    Every value is stored lowercase.
    """

    sender_name_markers: tuple[str, ...] = ()
    message_reasons: tuple[str, ...] = ()
    boilerplate_phrases: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "NoiseFilterConfig":
        return cls(
            sender_name_markers=_lowered(data.get("sender_name_markers"), "sender_name_markers"),
            message_reasons=_lowered(data.get("message_reasons"), "message_reasons"),
            boilerplate_phrases=_lowered(data.get("boilerplate_phrases"), "boilerplate_phrases"),
        )

    @classmethod
    @handle_errors(
        ConfigurationLoadError,
        "Failed to load noise filter configuration",
        error_code="NOISE_FILTER_LOAD_FAILED",
        handled=(OSError, ValueError, yaml.YAMLError),
    )
    def from_yaml(cls, path: str | Path | None = None) -> "NoiseFilterConfig":
        """Load the noise table from YAML (the packaged table when ``path`` is None)."""
        config_path = Path(path) if path else DEFAULT_NOISE_FILTER_FILE
        if not config_path.exists():
            msg = f"Noise filter file not found: {config_path}"
            raise ResourceNotFoundError(
                msg,
                error_code="NOISE_FILTER_FILE_NOT_FOUND",
                context={"noise_filter_file": str(config_path)},
            )

        with config_path.open() as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            msg = f"Noise filter file must contain a mapping: {config_path}"
            raise ValueError(msg)

        config = cls.from_mapping(data)
        logger.info(
            "Loaded noise filters from %s (%d phrases)",
            config_path,
            len(config.boilerplate_phrases),
        )
        return config

    def sender_is_automated(self, sender_name: str) -> bool:
        name = sender_name.lower()
        return any(marker in name for marker in self.sender_name_markers)

    def reason_is_automated(self, message_reason: str) -> bool:
        return message_reason.lower() in self.message_reasons

    def text_is_boilerplate(self, text: str) -> bool:
        lowered = text.lower()
        return any(phrase in lowered for phrase in self.boilerplate_phrases)
