from __future__ import annotations

import io

import pytest

from flexilemma.beam_search import ConstantEventModel
from flexilemma.config import AnnotatorConfig
from flexilemma.doc import Morpheme, MorphoFactory
from flexilemma.errors import ConfigurationError, ModelLoadError
from flexilemma.lemmatizer import LemmatizerME, StatisticalLemmatizer
from flexilemma.model_cache import ModelCache
from flexilemma.models import save_model

from conftest import make_artifact


@pytest.fixture
def cache(stub_lemmatizer_artifact):
    cache = ModelCache("lemmatizer")
    cache.get_or_load("en", lambda: stub_lemmatizer_artifact)
    return cache


@pytest.fixture
def lemmatizer(cache):
    return StatisticalLemmatizer({"language": "en"}, model_cache=cache)


def test_lemmatize(lemmatizer):
    assert lemmatizer.lemmatize(["The", "cats", "ran"], ["DET", "NOUN", "VERB"]) == ["the", "cat", "run"]


def test_get_morphemes(lemmatizer):
    morphemes = lemmatizer.get_morphemes(["cats", "walked"], ["NOUN", "VERB"])
    assert morphemes == [Morpheme("cats", "NOUN", "cat"), Morpheme("walked", "VERB", "walk")]
    assert str(morphemes[0]) == "cats\tNOUN\tcat"


def test_inapplicable_class_gives_placeholder_lemma(stub_lemmatizer_artifact):
    lemmatizer = LemmatizerME(stub_lemmatizer_artifact)
    assert lemmatizer.decode_lemmas(["cats", "ox"], ["Rau1", "Ds0"]) == ["_", "_"]


def test_multiple_lemmas_per_candidate_tag(lemmatizer):
    morph_map = lemmatizer.get_multiple_lemmas(["run"], [["VERB"], ["NOUN"]])
    assert morph_map == {"run": ["VERB#run", "NOUN#run"]}


def test_multiple_lemmas_are_distinct_and_ordered(lemmatizer):
    rows = [["DET", "NOUN"], ["DET", "VERB"], ["DET", "NOUN"]]
    morph_map = lemmatizer.get_multiple_lemmas(["the", "cats"], rows)
    assert list(morph_map) == ["the", "cats"]
    assert morph_map["the"] == ["DET#the"]
    assert morph_map["cats"][0] == "NOUN#cat"
    assert len(morph_map["cats"]) == 2
    assert morph_map["cats"][1].startswith("VERB#")


def test_k_best_lemma_classes(stub_lemmatizer_artifact):
    lemmatizer = LemmatizerME(stub_lemmatizer_artifact)
    sequences = lemmatizer.lemmatize_k(3, ["cats"], ["NOUN"])
    assert sequences[0] == ["Ds0"]
    assert len(sequences) == 3
    top = lemmatizer.top_k_sequences(["cats"], ["NOUN"])
    assert [list(sequence.outcomes) for sequence in top] == sequences
    assert lemmatizer.all_lemma_classes() == ["Dd0De1", "Ds0", "O", "Rau1"]


def test_tags_must_match_tokens(stub_lemmatizer_artifact):
    with pytest.raises(ValueError):
        LemmatizerME(stub_lemmatizer_artifact).lemmatize(["cats", "ran"], ["NOUN"])


def test_custom_morpho_factory(cache):
    class UpperFactory(MorphoFactory):
        def create_morpheme(self, word, tag, lemma=None):
            return Morpheme(word, tag, lemma.upper() if lemma else lemma)

    lemmatizer = StatisticalLemmatizer({"language": "en"}, UpperFactory(), model_cache=cache)
    assert lemmatizer.get_morphemes(["cats"], ["NOUN"])[0].lemma == "CAT"


def test_model_stream_and_disabled_cache(tmp_path):
    buffer = io.BytesIO()
    save_model(make_artifact("lemmatizer", ConstantEventModel("O")), buffer)
    config = AnnotatorConfig(language="en", use_model_cache=False)
    cache = ModelCache("lemmatizer")
    lemmatizer = StatisticalLemmatizer(config, model_stream=io.BytesIO(buffer.getvalue()), model_cache=cache)
    assert lemmatizer.lemmatize(["Home"], ["ADV"]) == ["home"]
    assert len(cache) == 0


def test_shared_cache_between_instances(cache):
    first = StatisticalLemmatizer({"language": "en"}, model_cache=cache)
    second = StatisticalLemmatizer({"language": "EN", "useModelCache": "true"}, model_cache=cache)
    assert first.lemmatizer.model_artifact is second.lemmatizer.model_artifact


def test_construction_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        StatisticalLemmatizer({"lemmatizerModel": "en.zip"}, model_cache=ModelCache())
    with pytest.raises(ModelLoadError):
        StatisticalLemmatizer(
            {"language": "en", "lemmatizerModel": str(tmp_path / "missing.zip")},
            model_cache=ModelCache(),
        )
    with pytest.raises(ConfigurationError):
        StatisticalLemmatizer({"language": "en", "useModelCache": "maybe"}, model_cache=ModelCache())


def test_tagger_model_is_rejected(stub_tagger_artifact):
    cache = ModelCache()
    cache.get_or_load("en", lambda: stub_tagger_artifact)
    with pytest.raises(ConfigurationError):
        StatisticalLemmatizer({"language": "en"}, model_cache=cache)
