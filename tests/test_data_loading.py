from __future__ import annotations

import pytest

from flexilemma.data_loading import load_samples, read_conllu_samples, read_lemma_samples
from flexilemma.errors import ConfigurationError

CONLLU = """\
# sent_id = 1
# text = The cats don't run
1\tThe\tthe\tDET\tDT\t_\t2\tdet\t_\t_
2\tcats\tcat\tNOUN\tNNS\t_\t4\tnsubj\t_\t_
3-4\tdon't\t_\t_\t_\t_\t_\t_\t_\t_
3\tdo\tdo\tAUX\tVBP\t_\t5\taux\t_\t_
4\tn't\tnot\tPART\tRB\t_\t5\tadvmod\t_\t_
4.1\tghost\tghost\tX\t_\t_\t_\t_\t_\t_
5\trun\trun\tVERB\tVB\t_\t0\troot\t_\t_

1\tDogs\tdog\tNOUN\tNNS\t_\t0\troot\t_\t_
"""


def test_single_token_block():
    samples = list(read_lemma_samples("cats\tNOUN\tcat\n\n".splitlines()))
    assert len(samples) == 1
    assert samples[0].tokens == ("cats",)
    assert samples[0].tags == ("NOUN",)
    assert samples[0].classes == ("Ds0",)
    assert samples[0].lemmas == ("cat",)


def test_corrupt_line_is_skipped_and_logged(caplog):
    lines = ["bad\tline", "", "dogs\tNOUN\tdog", "ran\tVERB\trun", ""]
    with caplog.at_level("WARNING", logger="flexilemma.data_loading"):
        samples = list(read_lemma_samples(lines))
    assert len(samples) == 1
    assert samples[0].tokens == ("dogs", "ran")
    assert samples[0].lemmas == ("dog", "run")
    assert "Skipping corrupt line 1" in caplog.text


def test_corrupt_line_inside_sentence_keeps_the_rest():
    lines = ["the\tDET\tthe", "too\tmany\tfields\there", "cats\tNOUN\tcat"]
    samples = list(read_lemma_samples(lines))
    assert [sample.tokens for sample in samples] == [("the", "cats")]


def test_trailing_sentence_without_blank_line(samples):
    assert len(samples) == 8
    assert samples[-1].tokens == ("The", "dogs", "runs", "home")


def test_conllu_reader_skips_ranges_and_empty_nodes():
    samples = list(read_conllu_samples(CONLLU.splitlines()))
    assert len(samples) == 2
    assert samples[0].tokens == ("The", "cats", "do", "n't", "run")
    assert samples[0].tags == ("DET", "NOUN", "AUX", "PART", "VERB")
    assert samples[0].lemmas == ("the", "cat", "do", "not", "run")
    assert samples[1].tokens == ("Dogs",)


def test_load_samples_from_files(tmp_path, corpus_file):
    assert len(load_samples(corpus_file)) == 8
    conllu_path = tmp_path / "gold.conllu"
    conllu_path.write_text(CONLLU, encoding="utf-8")
    assert len(load_samples(conllu_path, "conllu")) == 2


def test_load_samples_rejects_unknown_format(corpus_file):
    with pytest.raises(ConfigurationError):
        load_samples(corpus_file, "xml")
