"""
Model artifacts for flexilemma.

A trained model is stored as a zip archive:

    manifest.json     language, component, beam size, context generator,
                      sequence validator, model type, trainer settings
    model.bin         joblib-serialized event model, or raw CRF model bytes
    dictionary.json   label dictionary (only for the dictionary validator)

Artifacts are immutable once loaded and are shared read-only between all
tagger/lemmatizer instances of a language.
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union

import joblib

from .beam_search import BEAM_SIZE_PARAMETER, DEFAULT_BEAM_SIZE, BeamSearch, CrfSequenceModel
from .context import ContextGenerator, get_context_generator
from .errors import ConfigurationError, ModelLoadError
from .task_registry import TASK_COMPONENTS, resolve_task
from .validator import SequenceValidator, create_sequence_validator

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
MODEL_NAME = "model.bin"
DICTIONARY_NAME = "dictionary.json"
FORMAT_VERSION = "1"

MODEL_TYPE_EVENT = "event"
MODEL_TYPE_SEQUENCE = "sequence"

REQUIRED_MANIFEST_KEYS = ("language", "component", "model_type", "context_generator", "sequence_validator")

ModelSource = Union[str, Path, BinaryIO]


@dataclass(frozen=True)
class ModelArtifact:
    """A trained scorer bound to its language and decoding strategies."""

    language: str
    component: str
    model_type: str
    scorer: Any
    context_generator: str
    sequence_validator: str
    manifest: Dict[str, Any] = field(default_factory=dict)
    validator_dictionary: Optional[Dict[str, List[str]]] = None

    @property
    def task(self) -> str:
        return resolve_task(self.component)

    @property
    def outcomes(self) -> List[str]:
        return list(self.scorer.outcomes)

    @property
    def beam_size(self) -> int:
        """Beam width stored in the manifest; ConfigurationError if it is not an integer."""
        raw = self.manifest.get(BEAM_SIZE_PARAMETER)
        if raw is None:
            return DEFAULT_BEAM_SIZE
        try:
            value = int(str(raw).strip())
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid beam size {raw!r} in {self.component} model for '{self.language}'"
            ) from exc
        if value < 1:
            raise ConfigurationError(
                f"Invalid beam size {raw!r} in {self.component} model for '{self.language}'"
            )
        return value

    def create_context_generator(self) -> ContextGenerator:
        return get_context_generator(self.context_generator)

    def create_sequence_validator(self) -> SequenceValidator:
        return create_sequence_validator(
            self.sequence_validator,
            self.outcomes,
            task=self.task,
            dictionary=self.validator_dictionary,
        )

    def sequence_model(self, beam_size: Optional[int] = None):
        """Decoder for this artifact: a beam search for event models, the CRF itself otherwise."""
        if self.model_type == MODEL_TYPE_SEQUENCE:
            return self.scorer
        return BeamSearch(self.beam_size if beam_size is None else beam_size, self.scorer)


def save_model(artifact: ModelArtifact, destination: Union[str, Path, BinaryIO]) -> None:
    """Write a model artifact as a zip archive to a path or a binary stream."""
    manifest = dict(artifact.manifest)
    manifest.update({
        "format_version": FORMAT_VERSION,
        "language": artifact.language,
        "component": artifact.component,
        "model_type": artifact.model_type,
        "context_generator": artifact.context_generator,
        "sequence_validator": artifact.sequence_validator,
        "outcomes": artifact.outcomes,
    })
    manifest.setdefault(BEAM_SIZE_PARAMETER, str(DEFAULT_BEAM_SIZE))

    if artifact.model_type == MODEL_TYPE_SEQUENCE:
        model_bytes = artifact.scorer.model_bytes
    else:
        buffer = io.BytesIO()
        joblib.dump(artifact.scorer, buffer)
        model_bytes = buffer.getvalue()

    if isinstance(destination, (str, Path)):
        Path(destination).parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(MANIFEST_NAME, json.dumps(manifest, ensure_ascii=False, indent=2, sort_keys=True))
        archive.writestr(MODEL_NAME, model_bytes)
        if artifact.validator_dictionary is not None:
            archive.writestr(DICTIONARY_NAME, json.dumps(artifact.validator_dictionary, ensure_ascii=False))


def _read_source(source: ModelSource, language: Optional[str]) -> bytes:
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise ModelLoadError("Model file not found", language=language, source=str(path)) from exc
        except OSError as exc:
            raise ModelLoadError(f"Cannot read model file: {exc}", language=language, source=str(path)) from exc
    try:
        data = source.read()
    except (OSError, ValueError) as exc:
        raise ModelLoadError(f"Cannot read model stream: {exc}", language=language, source="<stream>") from exc
    if not isinstance(data, bytes):
        raise ModelLoadError("Model stream must be opened in binary mode", language=language, source="<stream>")
    return data


def load_model(source: ModelSource, *, language: Optional[str] = None) -> ModelArtifact:
    """
    Deserialize a model artifact from a path or a binary stream.

    Args:
        source: Path to a model archive, or a readable binary stream
        language: Language the caller expects; used for error messages and a
            mismatch warning

    Returns:
        The loaded ModelArtifact

    Raises:
        ModelLoadError: the source is missing, unreadable or not a valid model
        ConfigurationError: the model names an unknown context generator or validator
    """
    source_name = str(source) if isinstance(source, (str, Path)) else "<stream>"
    data = _read_source(source, language)
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = set(archive.namelist())
            if MANIFEST_NAME not in names or MODEL_NAME not in names:
                raise ModelLoadError("Model archive lacks manifest or model data", language=language, source=source_name)
            manifest = json.loads(archive.read(MANIFEST_NAME).decode("utf-8"))
            model_bytes = archive.read(MODEL_NAME)
            dictionary = None
            if DICTIONARY_NAME in names:
                dictionary = json.loads(archive.read(DICTIONARY_NAME).decode("utf-8"))
    except (zipfile.BadZipFile, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ModelLoadError(f"Malformed model archive: {exc}", language=language, source=source_name) from exc

    if not isinstance(manifest, dict):
        raise ModelLoadError("Model manifest is not a mapping", language=language, source=source_name)
    missing = [key for key in REQUIRED_MANIFEST_KEYS if not manifest.get(key)]
    if missing:
        raise ModelLoadError(
            f"Model manifest is missing required entries: {', '.join(missing)}",
            language=language,
            source=source_name,
        )
    if language and manifest["language"] != language:
        logger.warning(
            "Model %s was trained for language '%s' but is loaded for '%s'",
            source_name, manifest["language"], language,
        )

    component = TASK_COMPONENTS[resolve_task(manifest["component"])]
    model_type = manifest["model_type"]
    if model_type == MODEL_TYPE_SEQUENCE:
        scorer = CrfSequenceModel(model_bytes, manifest.get("outcomes") or [])
    elif model_type == MODEL_TYPE_EVENT:
        try:
            scorer = joblib.load(io.BytesIO(model_bytes))
        except Exception as exc:
            raise ModelLoadError(f"Cannot deserialize event model: {exc}", language=language, source=source_name) from exc
    else:
        raise ModelLoadError(f"Unknown model type '{model_type}'", language=language, source=source_name)

    artifact = ModelArtifact(
        language=manifest["language"],
        component=component,
        model_type=model_type,
        scorer=scorer,
        context_generator=manifest["context_generator"],
        sequence_validator=manifest["sequence_validator"],
        manifest=manifest,
        validator_dictionary=dictionary,
    )
    # Fail on unknown strategies or a bad beam size at load time rather than at first decode
    artifact.beam_size
    artifact.create_context_generator()
    artifact.create_sequence_validator()
    return artifact
