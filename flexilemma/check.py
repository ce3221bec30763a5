"""
Token-level evaluation of taggers and lemmatizers.

Accuracy is kept in an immutable ``WordAccuracy`` value that every evaluation
step folds into a new one, so the running figures can be read at any point of
the stream and several evaluations can run side by side.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .doc import Sample
from .lemmatizer import LemmatizerME
from .tagger import POSTaggerME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WordAccuracy:
    correct: int = 0
    total: int = 0

    def add(self, is_correct: bool) -> "WordAccuracy":
        return WordAccuracy(self.correct + int(bool(is_correct)), self.total + 1)

    @property
    def mean(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total

    @property
    def count(self) -> int:
        return self.total

    def __str__(self) -> str:
        return f"Accuracy: {self.mean} Number of Samples: {self.count}"


def score_sequences(accuracy: WordAccuracy, reference: Sequence[str], predicted: Sequence[str]) -> WordAccuracy:
    """Fold a reference/predicted label pair into ``accuracy``, one step per reference token."""
    if len(reference) != len(predicted):
        raise ValueError(f"Reference has {len(reference)} labels, prediction has {len(predicted)}")
    for gold, pred in zip(reference, predicted):
        accuracy = accuracy.add(gold == pred)
    return accuracy


class _Evaluator(ABC):
    def __init__(self, accuracy: Optional[WordAccuracy] = None):
        self.accuracy = accuracy or WordAccuracy()

    def add_sequences(self, reference: Sequence[str], predicted: Sequence[str]) -> WordAccuracy:
        self.accuracy = score_sequences(self.accuracy, reference, predicted)
        return self.accuracy

    @abstractmethod
    def evaluate_sample(self, reference: Sample) -> Sample:
        """Annotate the reference tokens, score them and return the predicted sample."""

    def evaluate(self, samples: Iterable[Sample]) -> WordAccuracy:
        """Evaluate every sample of a stream and return the final accuracy."""
        for sample in samples:
            self.evaluate_sample(sample)
        logger.info("%s", self.accuracy)
        return self.accuracy

    @property
    def word_accuracy(self) -> float:
        return self.accuracy.mean

    @property
    def word_count(self) -> int:
        return self.accuracy.count

    def __str__(self) -> str:
        return str(self.accuracy)


class LemmatizerEvaluator(_Evaluator):
    """Compares predicted lemmas with the reference lemmas of each sample."""

    def __init__(self, lemmatizer: LemmatizerME, accuracy: Optional[WordAccuracy] = None):
        super().__init__(accuracy)
        self.lemmatizer = lemmatizer

    def evaluate_sample(self, reference: Sample) -> Sample:
        """Lemmatize ``reference`` with its gold tags and return the predicted sample."""
        classes = self.lemmatizer.lemmatize(reference.tokens, reference.tags)
        predicted = Sample(reference.tokens, reference.tags, classes)
        self.add_sequences(reference.lemmas, predicted.lemmas)
        return predicted


class TaggerEvaluator(_Evaluator):
    """Compares predicted POS tags with the reference tags of each sample."""

    def __init__(self, tagger: POSTaggerME, accuracy: Optional[WordAccuracy] = None):
        super().__init__(accuracy)
        self.tagger = tagger

    def evaluate_sample(self, reference: Sample) -> Sample:
        tags = self.tagger.tag(reference.tokens)
        predicted = Sample(reference.tokens, tags, reference.classes)
        self.add_sequences(reference.tags, predicted.tags)
        return predicted
