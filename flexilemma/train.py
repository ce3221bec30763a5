"""
Training of flexilemma tagger and lemmatizer models.

Three trainer types are available:

* ``event``: every token is an independent training event (history features
  come from the gold labels); maximum entropy (LogisticRegression) or an
  averaged perceptron.
* ``event_sequence``: averaged perceptron (or log-loss SGD) trained sentence
  by sentence; after the first epoch the history features of each sentence are
  taken from the model's own beam-decoded labels, so training sees the same
  kind of history as decoding.
* ``sequence``: linear-chain CRF trained with python-crfsuite.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import tempfile
from collections import Counter
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence as SequenceType, Tuple, Union

import numpy as np
from sklearn.feature_extraction import DictVectorizer
from sklearn.linear_model import LogisticRegression, SGDClassifier

from .beam_search import BeamSearch, ClassifierEventModel, ConstantEventModel, CrfSequenceModel
from .context import ContextGenerator, get_context_generator
from .doc import Sample
from .errors import ConfigurationError
from .model_cache import normalize_language
from .models import MODEL_TYPE_EVENT, MODEL_TYPE_SEQUENCE, ModelArtifact
from .task_registry import TASK_COMPONENTS, TASK_TAG, resolve_task
from .validator import (
    SEQUENCE_VALIDATORS,
    VALIDATOR_DEFAULT,
    VALIDATOR_DICTIONARY,
    build_validator_dictionary,
)

logger = logging.getLogger(__name__)

ALGORITHM_MAXENT = "maxent"
ALGORITHM_PERCEPTRON = "perceptron"
ALGORITHMS = (ALGORITHM_MAXENT, ALGORITHM_PERCEPTRON)


class TrainerType(str, Enum):
    EVENT = "event"
    EVENT_SEQUENCE = "event_sequence"
    SEQUENCE = "sequence"

    @classmethod
    def parse(cls, value: Union[str, "TrainerType"]) -> "TrainerType":
        """Parse a trainer type name ("event", "EVENT_SEQUENCE", "event-sequence", ...)."""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower().replace("-", "_")
        for member in cls:
            if member.value == normalized:
                return member
        raise ConfigurationError(
            f"Unsupported trainer type '{value}'. Supported types: {', '.join(m.value for m in cls)}"
        )


@dataclass
class TrainingParameters:
    trainer_type: str = TrainerType.EVENT.value
    algorithm: str = ALGORITHM_MAXENT
    iterations: int = 100
    cutoff: int = 1  # Features seen fewer times are dropped
    beam_size: int = 3
    regularization: float = 1.0  # C for maxent, c2 for the CRF
    context_generator: Optional[str] = None  # Defaults to the component's own generator
    sequence_validator: str = VALIDATOR_DEFAULT

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "TrainingParameters":
        known = {f.name: f for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            if key not in known:
                logger.warning("Ignoring unknown training parameter '%s'", key)
                continue
            if value is None:
                continue
            try:
                if key in ("iterations", "cutoff", "beam_size"):
                    value = int(value)
                elif key == "regularization":
                    value = float(value)
                else:
                    value = str(value)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid value for training parameter '{key}': {value!r}") from exc
            kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TrainingParameters":
        """Load parameters from a JSON object file."""
        try:
            with open(path, "r", encoding="utf-8") as handle:
                values = json.load(handle)
        except FileNotFoundError as exc:
            raise ConfigurationError(f"Training parameters file not found: {path}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid training parameters file {path}: {exc}") from exc
        if not isinstance(values, dict):
            raise ConfigurationError(f"Training parameters file {path} must contain a JSON object")
        return cls.from_dict(values)

    def validate(self) -> TrainerType:
        """Check every setting, returning the parsed trainer type."""
        trainer_type = TrainerType.parse(self.trainer_type)
        if self.algorithm not in ALGORITHMS:
            raise ConfigurationError(
                f"Unsupported algorithm '{self.algorithm}'. Supported algorithms: {', '.join(ALGORITHMS)}"
            )
        if self.iterations < 1:
            raise ConfigurationError(f"iterations must be positive, got {self.iterations}")
        if self.cutoff < 0:
            raise ConfigurationError(f"cutoff must not be negative, got {self.cutoff}")
        if self.beam_size < 1:
            raise ConfigurationError(f"beam_size must be positive, got {self.beam_size}")
        if self.regularization <= 0:
            raise ConfigurationError(f"regularization must be positive, got {self.regularization}")
        if self.sequence_validator not in SEQUENCE_VALIDATORS:
            raise ConfigurationError(
                f"Unknown sequence validator '{self.sequence_validator}'. "
                f"Supported validators: {', '.join(SEQUENCE_VALIDATORS)}"
            )
        return trainer_type

    def to_manifest(self) -> Dict[str, str]:
        # Manifest values are strings so models stay readable by any loader
        return {key: str(value) for key, value in asdict(self).items() if value is not None}


def _additional_context(sample: Sample, task: str) -> Optional[Tuple[str, ...]]:
    return None if task == TASK_TAG else sample.tags


def _sample_events(
    sample: Sample,
    task: str,
    generator: ContextGenerator,
    history: Optional[SequenceType[str]],
) -> List[List[str]]:
    additional = _additional_context(sample, task)
    return [generator.get_context(i, sample.tokens, history, additional) for i in range(len(sample))]


def _apply_cutoff(contexts: List[List[str]], cutoff: int) -> List[Dict[str, int]]:
    counts = Counter(feature for context in contexts for feature in context)
    return [
        {feature: 1 for feature in context if counts[feature] >= cutoff}
        for context in contexts
    ]


def _log(verbose: bool, message: str) -> None:
    logger.info(message)
    if verbose:
        print(f"[flexilemma] {message}", file=sys.stderr)


def _train_event(samples, task, generator, params, verbose):
    contexts: List[List[str]] = []
    labels: List[str] = []
    for sample in samples:
        gold = sample.labels(task)
        contexts.extend(_sample_events(sample, task, generator, gold))
        labels.extend(gold)
    outcomes = sorted(set(labels))
    if len(outcomes) == 1:
        _log(verbose, f"Only one outcome in the training data ({outcomes[0]!r}), using a constant model")
        return ConstantEventModel(outcomes[0])

    vectorizer = DictVectorizer()
    features = vectorizer.fit_transform(_apply_cutoff(contexts, params.cutoff))
    _log(verbose, f"Training {params.algorithm} event model on {len(labels):,} events, "
                  f"{len(vectorizer.feature_names_):,} features, {len(outcomes)} outcomes")
    if params.algorithm == ALGORITHM_PERCEPTRON:
        classifier = SGDClassifier(
            loss="perceptron", average=True, max_iter=params.iterations, tol=None, random_state=0
        )
    else:
        classifier = LogisticRegression(C=params.regularization, max_iter=params.iterations)
    classifier.fit(features, labels)
    return ClassifierEventModel(vectorizer, classifier)


def _train_event_sequence(samples, task, generator, params, verbose):
    gold_contexts = [_sample_events(sample, task, generator, sample.labels(task)) for sample in samples]
    outcomes = sorted({label for sample in samples for label in sample.labels(task)})
    if len(outcomes) == 1:
        _log(verbose, f"Only one outcome in the training data ({outcomes[0]!r}), using a constant model")
        return ConstantEventModel(outcomes[0])

    vectorizer = DictVectorizer()
    vectorizer.fit(_apply_cutoff([ctx for contexts in gold_contexts for ctx in contexts], params.cutoff))
    loss = "perceptron" if params.algorithm == ALGORITHM_PERCEPTRON else "log_loss"
    classifier = SGDClassifier(loss=loss, average=True, random_state=0)
    classes = np.array(outcomes)
    model: Optional[ClassifierEventModel] = None

    for epoch in range(params.iterations):
        decoder = BeamSearch(params.beam_size, model) if model is not None else None
        for sample, contexts in zip(samples, gold_contexts):
            if decoder is not None:
                predicted = decoder.best_sequence(
                    sample.tokens, _additional_context(sample, task), generator, None
                ).outcomes
                contexts = _sample_events(sample, task, generator, predicted)
            features = vectorizer.transform([{feature: 1 for feature in ctx} for ctx in contexts])
            classifier.partial_fit(features, list(sample.labels(task)), classes=classes)
        if model is None:
            # classes_ only exists after the first partial_fit call
            model = ClassifierEventModel(vectorizer, classifier)
        logger.debug("Finished epoch %d of %d", epoch + 1, params.iterations)
    _log(verbose, f"Trained {loss} sequence-consistent model for {params.iterations} epochs, "
                  f"{len(outcomes)} outcomes")
    return model


def _train_sequence(samples, task, generator, params, verbose):
    import pycrfsuite

    trainer = pycrfsuite.Trainer(verbose=False)
    outcomes = set()
    for sample in samples:
        labels = list(sample.labels(task))
        outcomes.update(labels)
        trainer.append(_sample_events(sample, task, generator, None), labels)
    trainer.set_params({
        "c2": params.regularization,
        "max_iterations": params.iterations,
        "feature.minfreq": params.cutoff,
    })
    with tempfile.TemporaryDirectory(prefix="flexilemma_crf_") as tmp_dir:
        model_path = os.path.join(tmp_dir, "model.crfsuite")
        trainer.train(model_path)
        model_bytes = Path(model_path).read_bytes()
    _log(verbose, f"Trained CRF on {len(samples):,} sentences, {len(outcomes)} outcomes")
    return CrfSequenceModel(model_bytes, sorted(outcomes))


_TRAINERS = {
    TrainerType.EVENT: _train_event,
    TrainerType.EVENT_SEQUENCE: _train_event_sequence,
    TrainerType.SEQUENCE: _train_sequence,
}


def train_model(
    language: str,
    samples: Iterable[Sample],
    params: Optional[TrainingParameters] = None,
    *,
    component: str,
    verbose: bool = False,
) -> ModelArtifact:
    """
    Train a tagger or lemmatizer model.

    Args:
        language: Language code stored in the model
        samples: Training sentences
        params: Training parameters (defaults to ``TrainingParameters()``)
        component: ``"tagger"`` or ``"lemmatizer"`` (task aliases are accepted)
        verbose: Print progress to stderr

    Returns:
        The trained ModelArtifact

    Raises:
        ConfigurationError: unsupported trainer type, algorithm, strategy name or
            parameter value; raised before any training work
        ValueError: no training samples
    """
    params = params or TrainingParameters()
    trainer_type = params.validate()
    task = resolve_task(component)
    language = normalize_language(language)
    generator_name = resolve_task(params.context_generator or task)
    generator = get_context_generator(generator_name)

    samples = list(samples)
    if not samples:
        raise ValueError("No training samples")
    _log(verbose, f"Training {TASK_COMPONENTS[task]} for '{language}' with the {trainer_type.value} trainer "
                  f"on {len(samples):,} sentences ({sum(len(s) for s in samples):,} tokens)")

    scorer = _TRAINERS[trainer_type](samples, task, generator, params, verbose)

    dictionary = None
    if params.sequence_validator == VALIDATOR_DICTIONARY:
        dictionary = build_validator_dictionary(samples, task)

    manifest = params.to_manifest()
    manifest["trainer_type"] = trainer_type.value
    manifest["context_generator"] = generator_name
    return ModelArtifact(
        language=language,
        component=TASK_COMPONENTS[task],
        model_type=MODEL_TYPE_SEQUENCE if trainer_type == TrainerType.SEQUENCE else MODEL_TYPE_EVENT,
        scorer=scorer,
        context_generator=generator_name,
        sequence_validator=params.sequence_validator,
        manifest=manifest,
        validator_dictionary=dictionary,
    )
