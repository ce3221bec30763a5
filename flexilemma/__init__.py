"""
flexilemma: statistical POS tagging and lemmatization.

Lemmas are predicted as shortest-edit-script classes over the word form, so
the lemmatizer is a sequence labeller like the tagger.
"""

__version__ = "1.0.0"

from flexilemma.config import AnnotatorConfig
from flexilemma.errors import ConfigurationError, FlexilemmaError, ModelLoadError
from flexilemma.lemmatizer import StatisticalLemmatizer
from flexilemma.tagger import StatisticalTagger

__all__ = [
    'AnnotatorConfig',
    'ConfigurationError',
    'FlexilemmaError',
    'ModelLoadError',
    'StatisticalLemmatizer',
    'StatisticalTagger',
    '__version__',
]
