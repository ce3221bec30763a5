"""
Context (feature) generators for the tagger and the lemmatizer.

A context generator maps a position in a sentence to the list of discrete
feature strings the scoring model uses to rank candidate labels there.
Generators are stateless; the same instance can be shared between threads.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Type

from .task_registry import TASK_LEMMATIZE, TASK_TAG, resolve_task

SENTENCE_BEGIN = "*SB*"
SENTENCE_END = "*SE*"

_HAS_DIGIT = re.compile(r"\d")
_HAS_LETTER = re.compile(r"[^\W\d_]")


def _word_at(tokens: Sequence[str], index: int) -> str:
    if index < 0:
        return SENTENCE_BEGIN
    if index >= len(tokens):
        return SENTENCE_END
    return tokens[index].lower()


def _shape_features(word: str) -> List[str]:
    features = []
    if "-" in word:
        features.append("h")
    if _HAS_DIGIT.search(word):
        features.append("d")
    if word[:1].isupper():
        features.append("ic")
    if word.isupper() and _HAS_LETTER.search(word):
        features.append("c")
    if not _HAS_LETTER.search(word) and not _HAS_DIGIT.search(word):
        features.append("p")
    return features


class ContextGenerator(ABC):
    """Produces the features used to score a label at one sentence position."""

    name: str = ""

    @abstractmethod
    def get_context(
        self,
        index: int,
        tokens: Sequence[str],
        prior_decisions: Optional[Sequence[str]] = None,
        additional_context: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """
        Args:
            index: Position being labelled
            tokens: Sentence tokens
            prior_decisions: Labels already decided for positions before ``index``;
                None when the scorer models label transitions itself
            additional_context: Auxiliary per-token input (POS tags for the lemmatizer)

        Returns:
            Feature strings for the position
        """


class PosContextGenerator(ContextGenerator):
    """Word window, affix and orthographic-shape features for POS tagging."""

    name = TASK_TAG
    prefix_length = 4
    suffix_length = 4

    def get_context(self, index, tokens, prior_decisions=None, additional_context=None):
        raw = tokens[index]
        word = raw.lower()
        features = ["default", f"w={word}"]
        for size in range(1, min(self.suffix_length, len(word)) + 1):
            features.append(f"suf={word[-size:]}")
        for size in range(1, min(self.prefix_length, len(word)) + 1):
            features.append(f"pre={word[:size]}")
        features.extend(_shape_features(raw))

        previous = _word_at(tokens, index - 1)
        before_previous = _word_at(tokens, index - 2)
        following = _word_at(tokens, index + 1)
        after_following = _word_at(tokens, index + 2)
        features.extend([
            f"p={previous}",
            f"pp={before_previous}",
            f"n={following}",
            f"nn={after_following}",
        ])

        if prior_decisions is not None:
            prev_tag = prior_decisions[index - 1] if index >= 1 else SENTENCE_BEGIN
            prev_prev_tag = prior_decisions[index - 2] if index >= 2 else SENTENCE_BEGIN
            features.append(f"t={prev_tag}")
            features.append(f"t2={prev_prev_tag},{prev_tag}")
            features.append(f"t,w={prev_tag},{word}")
        return features


class LemmaContextGenerator(ContextGenerator):
    """Word, POS tag and suffix features for lemma class prediction."""

    name = TASK_LEMMATIZE
    suffix_length = 5
    prefix_length = 3

    def get_context(self, index, tokens, prior_decisions=None, additional_context=None):
        raw = tokens[index]
        word = raw.lower()
        tags = additional_context or ()
        tag = tags[index] if index < len(tags) else "_"
        features = ["default", f"w={word}", f"t={tag}", f"w,t={word},{tag}"]
        for size in range(1, min(self.suffix_length, len(word)) + 1):
            suffix = word[-size:]
            features.append(f"suf={suffix}")
            features.append(f"suf,t={suffix},{tag}")
        for size in range(1, min(self.prefix_length, len(word)) + 1):
            features.append(f"pre={word[:size]}")
        features.extend(_shape_features(raw))

        prev_tag = tags[index - 1] if 0 < index <= len(tags) else SENTENCE_BEGIN
        next_tag = tags[index + 1] if index + 1 < len(tags) else SENTENCE_END
        features.extend([
            f"pt={prev_tag}",
            f"nt={next_tag}",
            f"pw={_word_at(tokens, index - 1)}",
            f"nw={_word_at(tokens, index + 1)}",
        ])

        if prior_decisions is not None:
            prev_class = prior_decisions[index - 1] if index >= 1 else SENTENCE_BEGIN
            features.append(f"pc={prev_class}")
            features.append(f"pc,t={prev_class},{tag}")
        return features


CONTEXT_GENERATORS: Dict[str, Type[ContextGenerator]] = {
    TASK_TAG: PosContextGenerator,
    TASK_LEMMATIZE: LemmaContextGenerator,
}


def get_context_generator(name: str) -> ContextGenerator:
    """
    Instantiate the context generator registered for a task.

    Accepts canonical task names and their aliases ("pos", "lemma", ...).
    Raises ConfigurationError for unknown names.
    """
    return CONTEXT_GENERATORS[resolve_task(name)]()
