from __future__ import annotations

from pathlib import Path

import pytest

from flexilemma.data_loading import read_lemma_samples
from flexilemma.models import MODEL_TYPE_EVENT, ModelArtifact

CORPUS = """\
The\tDET\tthe
cats\tNOUN\tcat
ran\tVERB\trun
home\tADV\thome

Dogs\tNOUN\tdog
run\tVERB\trun
fast\tADV\tfast

The\tDET\tthe
dog\tNOUN\tdog
walked\tVERB\twalk
home\tADV\thome

The\tDET\tthe
birds\tNOUN\tbird
sang\tVERB\tsing
loudly\tADV\tloudly

Cats\tNOUN\tcat
walked\tVERB\twalk
slowly\tADV\tslowly

The\tDET\tthe
cat\tNOUN\tcat
walks\tVERB\twalk
fast\tADV\tfast

Birds\tNOUN\tbird
sing\tVERB\tsing

The\tDET\tthe
dogs\tNOUN\tdog
runs\tVERB\trun
home\tADV\thome
"""


class LookupEventModel:
    """
    Event model stub: prefers the outcome mapped to one feature value and
    spreads the remaining mass evenly over the other outcomes.
    """

    def __init__(self, outcomes, table, prefix="w=", preferred_prob=0.7):
        self.outcomes = list(outcomes)
        self.table = dict(table)
        self.prefix = prefix
        self.preferred_prob = preferred_prob
        self.calls = 0

    def eval(self, context):
        self.calls += 1
        preferred = None
        for feature in context:
            if feature.startswith(self.prefix):
                preferred = self.table.get(feature[len(self.prefix):])
                break
        if preferred is None or len(self.outcomes) == 1:
            return [1.0 / len(self.outcomes)] * len(self.outcomes)
        rest = (1.0 - self.preferred_prob) / (len(self.outcomes) - 1)
        return [self.preferred_prob if outcome == preferred else rest for outcome in self.outcomes]


def make_artifact(
    component,
    scorer,
    *,
    language="en",
    validator="default",
    dictionary=None,
    beam_size="3",
    context_generator=None,
):
    return ModelArtifact(
        language=language,
        component=component,
        model_type=MODEL_TYPE_EVENT,
        scorer=scorer,
        context_generator=context_generator or ("lemmatize" if component == "lemmatizer" else "tag"),
        sequence_validator=validator,
        manifest={"beam_size": beam_size},
        validator_dictionary=dictionary,
    )


@pytest.fixture
def corpus_text() -> str:
    return CORPUS


@pytest.fixture
def samples():
    return list(read_lemma_samples(CORPUS.splitlines()))


@pytest.fixture
def corpus_file(tmp_path: Path) -> Path:
    path = tmp_path / "train.tsv"
    path.write_text(CORPUS, encoding="utf-8")
    return path


@pytest.fixture
def stub_lemmatizer_artifact():
    # keyed on "word,tag" so the same word gets different classes per tag
    scorer = LookupEventModel(
        ["Dd0De1", "Ds0", "O", "Rau1"],
        {
            "cats,NOUN": "Ds0",
            "dogs,NOUN": "Ds0",
            "ran,VERB": "Rau1",
            "run,VERB": "O",
            "run,NOUN": "O",
            "walked,VERB": "Dd0De1",
            "the,DET": "O",
        },
        prefix="w,t=",
    )
    return make_artifact("lemmatizer", scorer)


@pytest.fixture
def stub_tagger_artifact():
    scorer = LookupEventModel(
        ["ADV", "DET", "NOUN", "VERB"],
        {"the": "DET", "cats": "NOUN", "dogs": "NOUN", "run": "VERB", "ran": "VERB", "home": "ADV"},
    )
    return make_artifact("tagger", scorer)
