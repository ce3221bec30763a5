"""
Statistical lemmatizer.

The lemmatizer does not predict lemmas directly. It predicts, for every
token, the edit-script class that turns the word form into its lemma
(see ``edit_script``), decoding the class sequence with the model's sequence
decoder, and then applies each class to its word.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Dict, List, Mapping, Optional, Sequence as SequenceType, Union

from .beam_search import DEFAULT_BEAM_SIZE, Sequence
from .config import PROPERTY_LEMMATIZER_MODEL, AnnotatorConfig, check_beam_size
from .doc import Morpheme, MorphoFactory
from .edit_script import decode_edit_script
from .errors import ConfigurationError
from .model_cache import LEMMATIZER_MODELS, ModelCache, acquire_model
from .models import ModelArtifact

logger = logging.getLogger(__name__)

PLACEHOLDER_LEMMA = "_"
COMPONENT = "lemmatizer"


def _check_lengths(tokens: SequenceType[str], tags: SequenceType[str]) -> None:
    if len(tokens) != len(tags):
        raise ValueError(f"Got {len(tags)} tags for {len(tokens)} tokens")


class LemmatizerME:
    """Predicts lemma classes with a trained model."""

    def __init__(self, model: ModelArtifact, beam_size: Optional[int] = None):
        if model.component != COMPONENT:
            raise ConfigurationError(f"Expected a lemmatizer model, got a {model.component} model")
        self.model_artifact = model
        self.beam_size = model.beam_size if beam_size is None else check_beam_size(beam_size)
        self.context_generator = model.create_context_generator()
        self.sequence_validator = model.create_sequence_validator()
        self.model = model.sequence_model(self.beam_size)

    def all_lemma_classes(self) -> List[str]:
        """All lemma classes the model can predict."""
        return list(self.model.outcomes)

    def best_sequence(self, tokens: SequenceType[str], tags: SequenceType[str]) -> Sequence:
        """Best lemma class sequence together with its per-token probabilities."""
        _check_lengths(tokens, tags)
        return self.model.best_sequence(tokens, tags, self.context_generator, self.sequence_validator)

    def lemmatize(self, tokens: SequenceType[str], tags: SequenceType[str]) -> List[str]:
        """Lemma classes for a tagged sentence."""
        return list(self.best_sequence(tokens, tags).outcomes)

    def lemmatize_k(self, num_taggings: int, tokens: SequenceType[str], tags: SequenceType[str]) -> List[List[str]]:
        """The ``num_taggings`` best lemma class sequences."""
        _check_lengths(tokens, tags)
        sequences = self.model.best_sequences(
            num_taggings, tokens, tags, self.context_generator, self.sequence_validator
        )
        return [list(sequence.outcomes) for sequence in sequences]

    def top_k_sequences(
        self,
        tokens: SequenceType[str],
        tags: SequenceType[str],
        min_sequence_score: Optional[float] = None,
    ) -> List[Sequence]:
        _check_lengths(tokens, tags)
        return self.model.best_sequences(
            DEFAULT_BEAM_SIZE,
            tokens,
            tags,
            self.context_generator,
            self.sequence_validator,
            min_sequence_score,
        )

    def decode_lemmas(self, tokens: SequenceType[str], classes: SequenceType[str]) -> List[str]:
        """
        Apply predicted lemma classes to their tokens.

        Classes that do not fit their token yield the placeholder lemma ``_``.
        """
        lemmas = []
        for token, lemma_class in zip(tokens, classes):
            lemma = decode_edit_script(token, lemma_class)
            logger.debug("%s %s -> %s", token.lower(), lemma_class, lemma)
            lemmas.append(lemma or PLACEHOLDER_LEMMA)
        return lemmas


class StatisticalLemmatizer:
    """
    Lemmatizer facade: loads (or reuses) the model for a language and turns
    tokens plus POS tags into lemmas or morphemes.
    """

    def __init__(
        self,
        config: Union[AnnotatorConfig, Mapping[str, str]],
        morpho_factory: Optional[MorphoFactory] = None,
        *,
        model_stream: Optional[BinaryIO] = None,
        model_cache: Optional[ModelCache] = None,
    ):
        """
        Args:
            config: AnnotatorConfig, or properties with ``language``,
                ``lemmatizerModel`` and ``useModelCache``
            morpho_factory: Factory for the returned morphemes
            model_stream: Binary stream to read the model from instead of ``config.model``
            model_cache: Cache to share models through (defaults to the process-wide one)
        """
        if not isinstance(config, AnnotatorConfig):
            config = AnnotatorConfig.from_properties(config, model_key=PROPERTY_LEMMATIZER_MODEL)
        self.config = config
        model = acquire_model(
            config,
            model_cache if model_cache is not None else LEMMATIZER_MODELS,
            component=COMPONENT,
            stream=model_stream,
        )
        self.lemmatizer = LemmatizerME(model, beam_size=config.beam_size)
        self.morpho_factory = morpho_factory or MorphoFactory()

    def lemmatize(self, tokens: SequenceType[str], pos_tags: SequenceType[str]) -> List[str]:
        """Lemmas for a tokenized, POS-tagged sentence."""
        classes = self.lemmatizer.lemmatize(tokens, pos_tags)
        return self.lemmatizer.decode_lemmas(tokens, classes)

    def get_morphemes(self, tokens: SequenceType[str], pos_tags: SequenceType[str]) -> List[Morpheme]:
        lemmas = self.lemmatize(tokens, pos_tags)
        return self.get_morphemes_from_strings(tokens, pos_tags, lemmas)

    def get_morphemes_from_strings(
        self,
        tokens: SequenceType[str],
        pos_tags: SequenceType[str],
        lemmas: SequenceType[str],
    ) -> List[Morpheme]:
        return [
            self.morpho_factory.create_morpheme(word, tag, lemma)
            for word, tag, lemma in zip(tokens, pos_tags, lemmas)
        ]

    def get_multiple_lemmas(
        self,
        tokens: SequenceType[str],
        pos_tags: SequenceType[SequenceType[str]],
    ) -> Dict[str, List[str]]:
        """
        Lemmatize a sentence once per alternative tag sequence.

        Args:
            tokens: Sentence tokens
            pos_tags: Alternative tag sequences for the sentence (for instance the
                k-best output of a tagger), each as long as ``tokens``

        Returns:
            Ordered mapping of token -> distinct ``"tag#lemma"`` strings, in the
            order they were first produced
        """
        morph_map: Dict[str, List[str]] = {}
        for row in pos_tags:
            lemmas = self.lemmatize(tokens, row)
            for token, tag, lemma in zip(tokens, row, lemmas):
                values = morph_map.setdefault(token, [])
                entry = f"{tag}#{lemma}"
                if entry not in values:
                    values.append(entry)
        return morph_map
