from __future__ import annotations

import json

import pytest

from flexilemma.__main__ import main
from flexilemma.model_cache import LEMMATIZER_MODELS, TAGGER_MODELS


@pytest.fixture(autouse=True)
def clear_shared_caches():
    TAGGER_MODELS.clear()
    LEMMATIZER_MODELS.clear()
    yield
    TAGGER_MODELS.clear()
    LEMMATIZER_MODELS.clear()


@pytest.fixture
def trained_models(tmp_path, corpus_file):
    params = tmp_path / "params.json"
    params.write_text(json.dumps({"regularization": 100.0, "iterations": 1000}), encoding="utf-8")
    models = {}
    for component in ("tagger", "lemmatizer"):
        output = tmp_path / f"en-{component}.zip"
        exit_code = main([
            "train", "--component", component, "--language", "en",
            "--input", str(corpus_file), "--output", str(output), "--params", str(params),
        ])
        assert exit_code == 0
        assert output.exists()
        models[component] = output
    return models


def test_eval_prints_accuracy_table(trained_models, corpus_file, capsys):
    exit_code = main([
        "eval", "--component", "lemmatizer", "--language", "en",
        "--model", str(trained_models["lemmatizer"]), "--input", str(corpus_file),
    ])
    assert exit_code == 0
    out = capsys.readouterr().out
    assert "Accuracy" in out
    assert "Tokens" in out
    assert "28" in out


def test_tag_writes_tokens_tags_and_lemmas(trained_models, tmp_path):
    source = tmp_path / "input.txt"
    source.write_text("The\ncats\nran\n\nDogs\nrun\n", encoding="utf-8")
    target = tmp_path / "output.tsv"
    exit_code = main([
        "tag", "--language", "en",
        "--tagger-model", str(trained_models["tagger"]),
        "--lemmatizer-model", str(trained_models["lemmatizer"]),
        "--input", str(source), "--output", str(target),
    ])
    assert exit_code == 0
    blocks = target.read_text(encoding="utf-8").strip().split("\n\n")
    assert len(blocks) == 2
    first = [line.split("\t") for line in blocks[0].splitlines()]
    assert [row[0] for row in first] == ["The", "cats", "ran"]
    assert all(len(row) == 3 for row in first)


def test_errors_are_reported_not_raised(tmp_path, corpus_file, capsys):
    exit_code = main([
        "eval", "--component", "tagger", "--language", "en",
        "--model", str(tmp_path / "missing.zip"), "--input", str(corpus_file),
    ])
    assert exit_code == 1
    assert "Model file not found" in capsys.readouterr().err


def test_unsupported_trainer_type(tmp_path, corpus_file):
    params = tmp_path / "params.json"
    params.write_text(json.dumps({"trainer_type": "neural"}), encoding="utf-8")
    exit_code = main([
        "train", "--component", "tagger", "--language", "en",
        "--input", str(corpus_file), "--output", str(tmp_path / "out.zip"), "--params", str(params),
    ])
    assert exit_code == 1
    assert not (tmp_path / "out.zip").exists()


def test_eval_rejects_non_positive_beam_size(trained_models, corpus_file, capsys):
    exit_code = main([
        "eval", "--component", "lemmatizer", "--language", "en",
        "--model", str(trained_models["lemmatizer"]), "--input", str(corpus_file),
        "--beam-size", "-1",
    ])
    assert exit_code == 1
    err = capsys.readouterr().err
    assert "[flexilemma] Error:" in err
    assert "expected a positive integer" in err
