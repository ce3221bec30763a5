"""
Data Loading module for flexilemma.

Reads training/evaluation corpora into Sample objects. Two formats are
supported:

* tab-separated ``token<TAB>tag<TAB>lemma`` lines, a blank line ending each
  sentence;
* CoNLL-U, using the FORM, UPOS and LEMMA columns.

Malformed lines are skipped with a warning; they never abort the stream.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from .doc import Sample
from .edit_script import encode_edit_script
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

FORMAT_TSV = "tsv"
FORMAT_CONLLU = "conllu"
CORPUS_FORMATS = (FORMAT_TSV, FORMAT_CONLLU)


class _SentenceBuilder:
    def __init__(self):
        self.tokens: List[str] = []
        self.tags: List[str] = []
        self.classes: List[str] = []

    def add(self, token: str, tag: str, lemma: str) -> None:
        self.tokens.append(token)
        self.tags.append(tag)
        self.classes.append(encode_edit_script(token, lemma))

    def flush(self) -> Optional[Sample]:
        if not self.tokens:
            return None
        sample = Sample(tuple(self.tokens), tuple(self.tags), tuple(self.classes))
        self.tokens, self.tags, self.classes = [], [], []
        return sample


def read_lemma_samples(lines: Iterable[str]) -> Iterator[Sample]:
    """
    Parse ``token<TAB>tag<TAB>lemma`` lines into samples.

    Lemmas are stored as edit-script classes. Lines that do not have exactly
    three fields are skipped.
    """
    builder = _SentenceBuilder()
    for line_num, line in enumerate(lines, 1):
        line = line.rstrip("\r\n")
        if not line.strip():
            sample = builder.flush()
            if sample is not None:
                yield sample
            continue
        parts = line.split("\t")
        if len(parts) != 3:
            logger.warning("Skipping corrupt line %d: %r", line_num, line)
            continue
        builder.add(parts[0], parts[1], parts[2])
    sample = builder.flush()
    if sample is not None:
        yield sample


def read_conllu_samples(lines: Iterable[str]) -> Iterator[Sample]:
    """
    Parse CoNLL-U lines into samples (FORM, UPOS and LEMMA columns).

    Comment lines, multiword token ranges (``1-2``) and empty nodes (``1.1``)
    are ignored; lines without 10 columns are skipped with a warning.
    """
    builder = _SentenceBuilder()
    for line_num, line in enumerate(lines, 1):
        line = line.rstrip("\r\n")
        if not line.strip():
            sample = builder.flush()
            if sample is not None:
                yield sample
            continue
        if line.startswith("#"):
            continue
        parts = line.split("\t")
        if len(parts) != 10:
            logger.warning("Skipping corrupt CoNLL-U line %d: %r", line_num, line)
            continue
        token_id = parts[0]
        if "-" in token_id or "." in token_id:
            continue
        builder.add(parts[1], parts[3], parts[2])
    sample = builder.flush()
    if sample is not None:
        yield sample


def load_samples(file_path: Union[str, Path], corpus_format: str = FORMAT_TSV) -> List[Sample]:
    """Load all samples from a corpus file."""
    corpus_format = (corpus_format or FORMAT_TSV).lower()
    if corpus_format not in CORPUS_FORMATS:
        raise ConfigurationError(
            f"Unknown corpus format '{corpus_format}'. Supported formats: {', '.join(CORPUS_FORMATS)}"
        )
    reader = read_conllu_samples if corpus_format == FORMAT_CONLLU else read_lemma_samples
    with open(file_path, "r", encoding="utf-8", errors="replace") as handle:
        return list(reader(handle))
