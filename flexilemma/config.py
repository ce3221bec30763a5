"""
Configuration for flexilemma taggers and lemmatizers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from .errors import ConfigurationError

MODELS_DIR_ENV_VAR = "FLEXILEMMA_MODELS_DIR"

# Property names accepted by AnnotatorConfig.from_properties
PROPERTY_LANGUAGE = "language"
PROPERTY_TAGGER_MODEL = "model"
PROPERTY_LEMMATIZER_MODEL = "lemmatizerModel"
PROPERTY_USE_MODEL_CACHE = "useModelCache"
PROPERTY_BEAM_SIZE = "beamSize"


def str_to_bool(value: Union[str, bool]) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"true", "1", "yes", "on"}:
        return True
    if lowered in {"false", "0", "no", "off"}:
        return False
    raise ConfigurationError(f"Expected true/false, got '{value}'")


def check_beam_size(value: int, name: str = "beam size") -> int:
    """Return ``value`` if it is a positive integer, else raise ConfigurationError."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"Invalid {name}: {value!r} (expected a positive integer)")
    return value


def get_models_dir() -> Path:
    """
    Directory searched for model names that are not existing paths.

    ``$FLEXILEMMA_MODELS_DIR`` if set, otherwise ``~/.flexilemma/models``.
    """
    if os.environ.get(MODELS_DIR_ENV_VAR):
        return Path(os.environ[MODELS_DIR_ENV_VAR]).expanduser()
    return Path.home() / ".flexilemma" / "models"


def resolve_model_path(name: Union[str, Path]) -> Path:
    """Return ``name`` if it exists, else the same name inside the models directory."""
    path = Path(name).expanduser()
    if path.exists() or path.is_absolute():
        return path
    candidate = get_models_dir() / path
    if candidate.exists():
        return candidate
    return path


@dataclass(frozen=True)
class AnnotatorConfig:
    """Settings shared by StatisticalTagger and StatisticalLemmatizer."""
    language: str
    model: Optional[Path] = None  # Model archive; optional when the cache already holds the language
    use_model_cache: bool = True  # Share loaded models between instances
    beam_size: Optional[int] = None  # Overrides the beam size stored in the model

    def __post_init__(self):
        if self.beam_size is not None:
            check_beam_size(self.beam_size, f"'{PROPERTY_BEAM_SIZE}'")

    @classmethod
    def from_properties(cls, props: Mapping[str, str], *, model_key: str = PROPERTY_TAGGER_MODEL) -> "AnnotatorConfig":
        """
        Build a config from string properties.

        Args:
            props: Mapping with ``language``, the model property, ``useModelCache``
                and optionally ``beamSize``
            model_key: Property holding the model path (``model`` for the tagger,
                ``lemmatizerModel`` for the lemmatizer)
        """
        language = props.get(PROPERTY_LANGUAGE)
        if not language:
            raise ConfigurationError(f"Missing required property '{PROPERTY_LANGUAGE}'")
        model = props.get(model_key)
        beam_size = props.get(PROPERTY_BEAM_SIZE)
        if beam_size is not None:
            try:
                beam_size = int(beam_size)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid value for '{PROPERTY_BEAM_SIZE}': {beam_size!r}") from exc
        return cls(
            language=language,
            model=resolve_model_path(model) if model else None,
            use_model_cache=str_to_bool(props.get(PROPERTY_USE_MODEL_CACHE, "true")),
            beam_size=beam_size,
        )
