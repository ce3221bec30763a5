"""
Sequence validators.

A validator decides whether a label may extend a partially decoded sequence.
It runs before scoring and is independent of model probabilities.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .errors import ConfigurationError
from .task_registry import TASK_LEMMATIZE, TASK_TAG, resolve_task

VALIDATOR_DEFAULT = "default"
VALIDATOR_DICTIONARY = "dictionary"
SEQUENCE_VALIDATORS = (VALIDATOR_DEFAULT, VALIDATOR_DICTIONARY)


class SequenceValidator(ABC):
    name: str = ""

    @abstractmethod
    def valid_sequence(
        self,
        index: int,
        tokens: Sequence[str],
        prior_outcomes: Sequence[str],
        outcome: str,
        additional_context: Optional[Sequence[str]] = None,
    ) -> bool:
        """Return True if ``outcome`` is admissible at ``index`` after ``prior_outcomes``."""


class DefaultSequenceValidator(SequenceValidator):
    """Admits every label the model knows about."""

    name = VALIDATOR_DEFAULT

    def __init__(self, outcomes: Iterable[str]):
        self.outcomes = frozenset(outcomes)

    def valid_sequence(self, index, tokens, prior_outcomes, outcome, additional_context=None):
        return outcome in self.outcomes


class DictionarySequenceValidator(DefaultSequenceValidator):
    """
    Restricts labels to those observed in training for the same key.

    For the lemmatizer the key is the POS tag of the token (lemma classes never
    seen with a tag are rejected); for the tagger it is the lower-cased word
    (a tag dictionary). Keys missing from the dictionary fall back to the
    default behaviour.
    """

    name = VALIDATOR_DICTIONARY

    def __init__(self, outcomes: Iterable[str], dictionary: Dict[str, Iterable[str]], task: str):
        super().__init__(outcomes)
        self.task = resolve_task(task)
        self.dictionary: Dict[str, frozenset] = {key: frozenset(values) for key, values in dictionary.items()}

    def _key(self, index: int, tokens: Sequence[str], additional_context: Optional[Sequence[str]]) -> Optional[str]:
        if self.task == TASK_LEMMATIZE:
            if additional_context is None or index >= len(additional_context):
                return None
            return additional_context[index]
        return tokens[index].lower()

    def valid_sequence(self, index, tokens, prior_outcomes, outcome, additional_context=None):
        if outcome not in self.outcomes:
            return False
        allowed = self.dictionary.get(self._key(index, tokens, additional_context))
        if allowed is None:
            return True
        return outcome in allowed


def build_validator_dictionary(samples: Iterable, task: str) -> Dict[str, List[str]]:
    """
    Collect the labels observed for each dictionary key in training samples.

    Returns a JSON-serialisable mapping of key -> sorted labels.
    """
    task = resolve_task(task)
    observed: Dict[str, Set[str]] = defaultdict(set)
    for sample in samples:
        labels = sample.labels(task)
        for idx, label in enumerate(labels):
            if task == TASK_TAG:
                key = sample.tokens[idx].lower()
            else:
                key = sample.tags[idx]
            observed[key].add(label)
    return {key: sorted(values) for key, values in sorted(observed.items())}


def create_sequence_validator(
    name: str,
    outcomes: Iterable[str],
    *,
    task: str,
    dictionary: Optional[Dict[str, Iterable[str]]] = None,
) -> SequenceValidator:
    """
    Build the validator registered under ``name``.

    Raises ConfigurationError for unknown names, or when the dictionary
    validator is requested without its dictionary.
    """
    normalized = (name or VALIDATOR_DEFAULT).strip().lower()
    if normalized == VALIDATOR_DEFAULT:
        return DefaultSequenceValidator(outcomes)
    if normalized == VALIDATOR_DICTIONARY:
        if dictionary is None:
            raise ConfigurationError("The dictionary sequence validator requires a label dictionary")
        return DictionarySequenceValidator(outcomes, dictionary, task)
    raise ConfigurationError(
        f"Unknown sequence validator '{name}'. Supported validators: {', '.join(SEQUENCE_VALIDATORS)}"
    )
