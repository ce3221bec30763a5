"""
Statistical POS tagger.
"""

from __future__ import annotations

from typing import BinaryIO, List, Mapping, Optional, Sequence as SequenceType, Union

from .beam_search import DEFAULT_BEAM_SIZE, Sequence
from .config import PROPERTY_TAGGER_MODEL, AnnotatorConfig, check_beam_size
from .doc import Morpheme, MorphoFactory
from .errors import ConfigurationError
from .model_cache import TAGGER_MODELS, ModelCache, acquire_model
from .models import ModelArtifact

COMPONENT = "tagger"
DEFAULT_NUM_TAGGINGS = 13


class POSTaggerME:
    """Predicts POS tag sequences with a trained model."""

    def __init__(self, model: ModelArtifact, beam_size: Optional[int] = None):
        if model.component != COMPONENT:
            raise ConfigurationError(f"Expected a tagger model, got a {model.component} model")
        self.model_artifact = model
        self.beam_size = model.beam_size if beam_size is None else check_beam_size(beam_size)
        self.context_generator = model.create_context_generator()
        self.sequence_validator = model.create_sequence_validator()
        self.model = model.sequence_model(self.beam_size)

    def all_pos_tags(self) -> List[str]:
        return list(self.model.outcomes)

    def best_sequence(self, tokens: SequenceType[str]) -> Sequence:
        return self.model.best_sequence(tokens, None, self.context_generator, self.sequence_validator)

    def tag(self, tokens: SequenceType[str]) -> List[str]:
        return list(self.best_sequence(tokens).outcomes)

    def tag_k(self, num_taggings: int, tokens: SequenceType[str]) -> List[List[str]]:
        sequences = self.model.best_sequences(
            num_taggings, tokens, None, self.context_generator, self.sequence_validator
        )
        return [list(sequence.outcomes) for sequence in sequences]

    def top_k_sequences(self, tokens: SequenceType[str], min_sequence_score: Optional[float] = None) -> List[Sequence]:
        return self.model.best_sequences(
            DEFAULT_BEAM_SIZE, tokens, None, self.context_generator, self.sequence_validator, min_sequence_score
        )


class StatisticalTagger:
    """POS tagger facade: loads (or reuses) the model for a language and tags tokens."""

    def __init__(
        self,
        config: Union[AnnotatorConfig, Mapping[str, str]],
        morpho_factory: Optional[MorphoFactory] = None,
        *,
        model_stream: Optional[BinaryIO] = None,
        model_cache: Optional[ModelCache] = None,
    ):
        if not isinstance(config, AnnotatorConfig):
            config = AnnotatorConfig.from_properties(config, model_key=PROPERTY_TAGGER_MODEL)
        self.config = config
        model = acquire_model(
            config,
            model_cache if model_cache is not None else TAGGER_MODELS,
            component=COMPONENT,
            stream=model_stream,
        )
        self.pos_tagger = POSTaggerME(model, beam_size=config.beam_size)
        self.morpho_factory = morpho_factory or MorphoFactory()

    def pos_annotate(self, tokens: SequenceType[str]) -> List[str]:
        return self.pos_tagger.tag(tokens)

    def get_morphemes(self, tokens: SequenceType[str]) -> List[Morpheme]:
        return self.get_morphemes_from_strings(self.pos_annotate(tokens), tokens)

    def get_all_pos_tags(self, tokens: SequenceType[str], num_taggings: int = DEFAULT_NUM_TAGGINGS) -> List[List[str]]:
        """The ``num_taggings`` best tag sequences, best first."""
        return self.pos_tagger.tag_k(num_taggings, tokens)

    def get_morphemes_from_strings(self, pos_tags: SequenceType[str], tokens: SequenceType[str]) -> List[Morpheme]:
        return [
            self.morpho_factory.create_morpheme(word, tag)
            for word, tag in zip(tokens, pos_tags)
        ]
