from __future__ import annotations

import pytest

from flexilemma.check import LemmatizerEvaluator, TaggerEvaluator, WordAccuracy, _Evaluator, score_sequences
from flexilemma.doc import Sample
from flexilemma.lemmatizer import LemmatizerME
from flexilemma.tagger import POSTaggerME


def test_word_accuracy_on_lemma_sequences():
    accuracy = score_sequences(WordAccuracy(), ["run", "run", "dog"], ["run", "ran", "dog"])
    assert accuracy.mean == pytest.approx(2 / 3)
    assert accuracy.count == 3


def test_word_accuracy_is_an_immutable_fold():
    empty = WordAccuracy()
    updated = empty.add(True).add(False)
    assert empty.count == 0
    assert empty.mean == 0.0
    assert (updated.correct, updated.total) == (1, 2)


def test_score_sequences_rejects_length_mismatch():
    with pytest.raises(ValueError):
        score_sequences(WordAccuracy(), ["a"], ["a", "b"])


def test_lemmatizer_evaluator(stub_lemmatizer_artifact):
    evaluator = LemmatizerEvaluator(LemmatizerME(stub_lemmatizer_artifact))
    reference = Sample.from_lemmas(["ran", "ran", "dogs"], ["VERB", "VERB", "NOUN"], ["run", "ran", "dog"])
    predicted = evaluator.evaluate_sample(reference)
    assert predicted.lemmas == ("run", "run", "dog")
    assert evaluator.word_accuracy == pytest.approx(2 / 3)
    assert evaluator.word_count == 3
    assert str(evaluator) == f"Accuracy: {2 / 3} Number of Samples: 3"


def test_accuracy_is_available_while_streaming(stub_lemmatizer_artifact):
    evaluator = LemmatizerEvaluator(LemmatizerME(stub_lemmatizer_artifact))
    evaluator.evaluate_sample(Sample.from_lemmas(["cats"], ["NOUN"], ["cat"]))
    assert (evaluator.word_accuracy, evaluator.word_count) == (1.0, 1)
    final = evaluator.evaluate([Sample.from_lemmas(["the", "dogs"], ["DET", "NOUN"], ["the", "doggo"])])
    assert final.count == 3
    assert final.mean == pytest.approx(2 / 3)


def test_tagger_evaluator(stub_tagger_artifact):
    evaluator = TaggerEvaluator(POSTaggerME(stub_tagger_artifact))
    reference = Sample.from_lemmas(["the", "cats", "run"], ["DET", "NOUN", "NOUN"], ["the", "cat", "run"])
    predicted = evaluator.evaluate_sample(reference)
    assert predicted.tags == ("DET", "NOUN", "VERB")
    assert evaluator.word_accuracy == pytest.approx(2 / 3)
    assert evaluator.word_count == 3


def test_evaluators_must_implement_evaluate_sample():
    class Incomplete(_Evaluator):
        pass

    with pytest.raises(TypeError):
        Incomplete()
