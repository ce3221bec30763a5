"""
Shortest edit script (SES) lemma classes.

A lemma class describes how to turn a word form into its lemma as a short
sequence of character edits. Both strings are lower-cased and reversed before
the script is computed, so positions count from the end of the word: removing
a plural "s" is ``Ds0`` for "cats", "dogs" and "houses" alike. That is what
keeps the number of distinct classes small compared to the vocabulary.

Serialized operations (``<pos>`` is an index into the reversed word form):

    D<c><pos>       delete character ``c`` found at ``pos``
    I<c><pos>       insert character ``c`` before ``pos``
    R<c><d><pos>    replace character ``c`` at ``pos`` by ``d``

Kept characters are not serialized. A pair needing no edits gets the class
``O``. Each operation carries exactly one (or two, for ``R``) codepoints
before its position, so digits in words do not make the format ambiguous.

Ties are broken cell by cell while the edit table is filled: each cell keeps
the partial script with the smallest (operation count, right-most edit
position, serialized operations). The result is deterministic and favours
suffix edits, but it is not the lexicographic minimum over every final
script of minimal length.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

IDENTITY_CLASS = "O"
DELETE = "D"
INSERT = "I"
REPLACE = "R"
_OPERATIONS = (DELETE, INSERT, REPLACE)

# (cost, right-most edit position, serialized operations)
_Script = Tuple[int, int, Tuple[str, ...]]


def _normalize(text: str) -> List[str]:
    return list(reversed(text.lower()))


def _extend(script: _Script, op: str, position: int) -> _Script:
    cost, max_pos, ops = script
    return (cost + 1, max(max_pos, position), ops + (op,))


def encode_edit_script(word: str, lemma: str) -> str:
    """
    Compute the lemma class that turns ``word`` into ``lemma``.

    Args:
        word: Surface word form
        lemma: Lemma of the word form

    Returns:
        Serialized edit script, ``O`` when both are equal after lower-casing
    """
    source = _normalize(word)
    target = _normalize(lemma)
    if source == target:
        return IDENTITY_CLASS

    rows = len(source) + 1
    cols = len(target) + 1
    table: List[List[Optional[_Script]]] = [[None] * cols for _ in range(rows)]
    table[0][0] = (0, -1, ())
    for i in range(rows):
        for j in range(cols):
            if i == 0 and j == 0:
                continue
            candidates = []
            if i > 0 and j > 0:
                diagonal = table[i - 1][j - 1]
                if source[i - 1] == target[j - 1]:
                    candidates.append(diagonal)
                else:
                    op = f"{REPLACE}{source[i - 1]}{target[j - 1]}{i - 1}"
                    candidates.append(_extend(diagonal, op, i - 1))
            if i > 0:
                op = f"{DELETE}{source[i - 1]}{i - 1}"
                candidates.append(_extend(table[i - 1][j], op, i - 1))
            if j > 0:
                op = f"{INSERT}{target[j - 1]}{i}"
                candidates.append(_extend(table[i][j - 1], op, i))
            table[i][j] = min(candidates)

    _, _, ops = table[-1][-1]
    return "".join(ops) if ops else IDENTITY_CLASS


def parse_edit_script(lemma_class: str) -> Optional[List[Tuple[str, str, str, int]]]:
    """
    Split a serialized lemma class into ``(op, char, new_char, position)`` tuples.

    Returns None when the class is not a well-formed edit script.
    """
    if lemma_class == IDENTITY_CLASS:
        return []
    parsed: List[Tuple[str, str, str, int]] = []
    idx = 0
    length = len(lemma_class)
    while idx < length:
        op = lemma_class[idx]
        if op not in _OPERATIONS:
            return None
        width = 2 if op == REPLACE else 1
        if idx + 1 + width > length:
            return None
        char = lemma_class[idx + 1]
        new_char = lemma_class[idx + 2] if op == REPLACE else ""
        idx += 1 + width
        start = idx
        while idx < length and lemma_class[idx].isdigit() and lemma_class[idx].isascii():
            idx += 1
        if idx == start:
            return None
        parsed.append((op, char, new_char, int(lemma_class[start:idx])))
    return parsed if parsed else None


def decode_edit_script(word: str, lemma_class: str) -> str:
    """
    Apply a lemma class to a word form.

    Decoding fails soft: when the script does not fit the word (a position
    outside the word, a character that is not where the script expects it, or
    a malformed class) the empty string is returned.

    Args:
        word: Surface word form
        lemma_class: Serialized edit script as produced by ``encode_edit_script``

    Returns:
        Lower-cased lemma, or ``""`` if the script is inapplicable
    """
    ops = parse_edit_script(lemma_class)
    if ops is None:
        logger.debug("Malformed lemma class %r for %r", lemma_class, word)
        return ""
    source = _normalize(word)
    inserts: dict = {}
    edits: dict = {}
    for op, char, new_char, position in ops:
        if op == INSERT:
            if position > len(source):
                return ""
            inserts.setdefault(position, []).append(char)
            continue
        if position >= len(source) or position in edits or source[position] != char:
            return ""
        edits[position] = new_char

    output: List[str] = []
    for idx in range(len(source) + 1):
        output.extend(inserts.get(idx, ()))
        if idx == len(source):
            break
        if idx in edits:
            output.append(edits[idx])
        else:
            output.append(source[idx])
    return "".join(reversed(output))


class EditScriptCodec:
    """Encoder/decoder pair for lemma classes, usable where an object is expected."""

    identity_class = IDENTITY_CLASS

    def encode(self, word: str, lemma: str) -> str:
        return encode_edit_script(word, lemma)

    def decode(self, word: str, lemma_class: str) -> str:
        return decode_edit_script(word, lemma_class)
