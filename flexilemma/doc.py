from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from .edit_script import decode_edit_script, encode_edit_script
from .task_registry import TASK_TAG, resolve_task


@dataclass(frozen=True)
class Sample:
    """One sentence of tokens with its POS tags and lemma classes."""

    tokens: Tuple[str, ...]
    tags: Tuple[str, ...]
    classes: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "tokens", tuple(self.tokens))
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "classes", tuple(self.classes))
        if not self.tokens:
            raise ValueError("A sample needs at least one token")
        if not (len(self.tokens) == len(self.tags) == len(self.classes)):
            raise ValueError(
                f"Sample sequences differ in length: {len(self.tokens)} tokens, "
                f"{len(self.tags)} tags, {len(self.classes)} classes"
            )

    @classmethod
    def from_lemmas(cls, tokens: Sequence[str], tags: Sequence[str], lemmas: Sequence[str]) -> "Sample":
        if len(lemmas) != len(tokens):
            raise ValueError(f"Got {len(lemmas)} lemmas for {len(tokens)} tokens")
        classes = [encode_edit_script(token, lemma) for token, lemma in zip(tokens, lemmas)]
        return cls(tuple(tokens), tuple(tags), tuple(classes))

    def labels(self, task: str) -> Tuple[str, ...]:
        """Labels a model for ``task`` is trained on: tags for the tagger, classes for the lemmatizer."""
        return self.tags if resolve_task(task) == TASK_TAG else self.classes

    @property
    def lemmas(self) -> Tuple[str, ...]:
        return tuple(
            decode_edit_script(token, lemma_class) or "_"
            for token, lemma_class in zip(self.tokens, self.classes)
        )

    def __len__(self) -> int:
        return len(self.tokens)


@dataclass(frozen=True)
class Morpheme:
    word: str
    tag: str
    lemma: Optional[str] = None
    attrs: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __str__(self) -> str:
        if self.lemma is None:
            return f"{self.word}\t{self.tag}"
        return f"{self.word}\t{self.tag}\t{self.lemma}"


class MorphoFactory:
    """Creates the morpheme objects returned by the tagger and the lemmatizer."""

    def create_morpheme(self, word: str, tag: str, lemma: Optional[str] = None) -> Morpheme:
        return Morpheme(word=word, tag=tag, lemma=lemma)
