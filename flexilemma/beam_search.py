"""
Sequence decoding for flexilemma.

Two kinds of sequence models are supported:

* ``BeamSearch`` wraps a per-token event model (maximum entropy or averaged
  perceptron) and searches label sequences left to right, keeping the best
  ``size`` partial sequences at every position.
* ``CrfSequenceModel`` wraps a linear-chain CRF trained with python-crfsuite,
  which scores whole sequences itself.

Both expose ``best_sequence`` / ``best_sequences`` with the same arguments so
the tagger and the lemmatizer do not need to know which one a model uses.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence as SequenceType, Tuple

import numpy as np

from .context import ContextGenerator
from .validator import SequenceValidator

logger = logging.getLogger(__name__)

DEFAULT_BEAM_SIZE = 3
BEAM_SIZE_PARAMETER = "beam_size"
MIN_PROBABILITY = 1e-10


@dataclass(frozen=True)
class Sequence:
    """A (partial) label sequence with per-position probabilities."""

    outcomes: Tuple[str, ...] = ()
    probs: Tuple[float, ...] = ()
    score: float = 0.0

    def extend(self, outcome: str, prob: float) -> "Sequence":
        return Sequence(
            outcomes=self.outcomes + (outcome,),
            probs=self.probs + (prob,),
            score=self.score + math.log(max(prob, MIN_PROBABILITY)),
        )

    def __len__(self) -> int:
        return len(self.outcomes)


def _rank_key(sequence: Sequence):
    return (-sequence.score, sequence.outcomes)


class ClassifierEventModel:
    """Scores the outcomes of a single position with a scikit-learn classifier."""

    def __init__(self, vectorizer: Any, classifier: Any):
        self.vectorizer = vectorizer
        self.classifier = classifier
        self.outcomes: List[str] = [str(label) for label in classifier.classes_]

    def eval(self, context: SequenceType[str]) -> List[float]:
        features = self.vectorizer.transform([{feature: 1 for feature in context}])
        if hasattr(self.classifier, "predict_proba"):
            return [float(p) for p in self.classifier.predict_proba(features)[0]]
        scores = np.atleast_1d(self.classifier.decision_function(features)[0])
        if scores.shape[0] == 1:
            # binary problems report a single margin for the positive class
            scores = np.array([0.0, scores[0]])
        scores = scores - scores.max()
        exp = np.exp(scores)
        return [float(p) for p in exp / exp.sum()]


class ConstantEventModel:
    """Event model for training data that only ever shows one outcome."""

    def __init__(self, outcome: str):
        self.outcomes: List[str] = [outcome]

    def eval(self, context: SequenceType[str]) -> List[float]:
        return [1.0]


class BeamSearch:
    """Left-to-right beam search over an event model."""

    def __init__(self, size: int, model: Any):
        if size < 1:
            raise ValueError(f"Beam size must be positive, got {size}")
        self.size = size
        self.model = model

    @property
    def outcomes(self) -> List[str]:
        return list(self.model.outcomes)

    def _extensions(
        self,
        sequence: Sequence,
        ranked: List[int],
        scores: List[float],
        index: int,
        tokens: SequenceType[str],
        additional_context: Optional[SequenceType[str]],
        validator: Optional[SequenceValidator],
    ) -> List[Sequence]:
        outcomes = self.model.outcomes
        extended = []
        for idx in ranked:
            if len(extended) >= self.size:
                break
            outcome = outcomes[idx]
            if validator is None or validator.valid_sequence(
                index, tokens, sequence.outcomes, outcome, additional_context
            ):
                extended.append(sequence.extend(outcome, scores[idx]))
        return extended

    def best_sequences(
        self,
        num_sequences: int,
        tokens: SequenceType[str],
        additional_context: Optional[SequenceType[str]],
        context_generator: ContextGenerator,
        validator: Optional[SequenceValidator],
        min_sequence_score: Optional[float] = None,
    ) -> List[Sequence]:
        """
        Return up to ``num_sequences`` label sequences, best first.

        Args:
            num_sequences: Number of sequences wanted
            tokens: Sentence tokens
            additional_context: Auxiliary per-token input passed to the context generator
            context_generator: Feature generator for each position
            validator: Admissibility check applied before a label enters the beam
            min_sequence_score: Drop partial sequences whose log score falls below this value
        """
        outcomes = self.model.outcomes
        keep = max(self.size, num_sequences)
        beam = [Sequence()]
        for index in range(len(tokens)):
            candidates: List[Sequence] = []
            for sequence in beam:
                context = context_generator.get_context(index, tokens, sequence.outcomes, additional_context)
                scores = self.model.eval(context)
                ranked = sorted(range(len(outcomes)), key=lambda j: (-scores[j], outcomes[j]))
                extended = self._extensions(
                    sequence, ranked[: self.size], scores, index, tokens, additional_context, validator
                )
                if not extended:
                    extended = self._extensions(
                        sequence, ranked, scores, index, tokens, additional_context, validator
                    )
                candidates.extend(extended)

            if not candidates:
                logger.debug("No admissible label at position %d of %r, ignoring the validator", index, tokens)
                sequence = beam[0]
                context = context_generator.get_context(index, tokens, sequence.outcomes, additional_context)
                scores = self.model.eval(context)
                best = min(range(len(outcomes)), key=lambda j: (-scores[j], outcomes[j]))
                candidates = [sequence.extend(outcomes[best], scores[best])]

            if min_sequence_score is not None:
                candidates = [seq for seq in candidates if seq.score >= min_sequence_score]
                if not candidates:
                    return []
            candidates.sort(key=_rank_key)
            beam = candidates[:keep]
        return beam[:num_sequences]

    def best_sequence(
        self,
        tokens: SequenceType[str],
        additional_context: Optional[SequenceType[str]],
        context_generator: ContextGenerator,
        validator: Optional[SequenceValidator],
    ) -> Sequence:
        return self.best_sequences(1, tokens, additional_context, context_generator, validator)[0]


class CrfSequenceModel:
    """Linear-chain CRF decoder backed by python-crfsuite."""

    def __init__(self, model_bytes: bytes, outcomes: SequenceType[str]):
        self.model_bytes = model_bytes
        self.outcomes: List[str] = list(outcomes)
        self._local = threading.local()

    def _tagger(self):
        # crfsuite taggers keep per-call state, so each thread gets its own
        tagger = getattr(self._local, "tagger", None)
        if tagger is None:
            import pycrfsuite

            tagger = pycrfsuite.Tagger()
            tagger.open_inmemory(self.model_bytes)
            self._local.tagger = tagger
        return tagger

    def best_sequences(
        self,
        num_sequences: int,
        tokens: SequenceType[str],
        additional_context: Optional[SequenceType[str]],
        context_generator: ContextGenerator,
        validator: Optional[SequenceValidator],
        min_sequence_score: Optional[float] = None,
    ) -> List[Sequence]:
        """
        Viterbi-decode the sentence; a CRF yields a single best sequence.

        Labels rejected by the validator are replaced by the admissible label
        with the highest marginal probability at that position.
        """
        if not tokens:
            return [Sequence()]
        xseq = [context_generator.get_context(i, tokens, None, additional_context) for i in range(len(tokens))]
        tagger = self._tagger()
        labels = list(tagger.tag(xseq))
        sequence = Sequence()
        for index, label in enumerate(labels):
            if validator is not None and not validator.valid_sequence(
                index, tokens, sequence.outcomes, label, additional_context
            ):
                ranked = sorted(self.outcomes, key=lambda y: (-tagger.marginal(y, index), y))
                admissible = [
                    y for y in ranked
                    if validator.valid_sequence(index, tokens, sequence.outcomes, y, additional_context)
                ]
                if admissible:
                    label = admissible[0]
            sequence = sequence.extend(label, tagger.marginal(label, index))
        if min_sequence_score is not None and sequence.score < min_sequence_score:
            return []
        return [sequence][:num_sequences]

    def best_sequence(
        self,
        tokens: SequenceType[str],
        additional_context: Optional[SequenceType[str]],
        context_generator: ContextGenerator,
        validator: Optional[SequenceValidator],
    ) -> Sequence:
        return self.best_sequences(1, tokens, additional_context, context_generator, validator)[0]
