"""Central definitions for flexilemma annotation tasks."""

from __future__ import annotations

from typing import Dict, Set

from .errors import ConfigurationError

TASK_LEMMATIZE = "lemmatize"
TASK_TAG = "tag"

# Canonical task descriptions
TASK_DESCRIPTIONS: Dict[str, str] = {
    TASK_LEMMATIZE: "Lemma class prediction from tokens and POS tags.",
    TASK_TAG: "Part-of-speech tagging from tokens.",
}

# Component name used in model manifests and on the command line
TASK_COMPONENTS: Dict[str, str] = {
    TASK_LEMMATIZE: "lemmatizer",
    TASK_TAG: "tagger",
}

# Canonical task -> alias strings
_TASK_ALIAS_DEFINITIONS: Dict[str, Set[str]] = {
    TASK_LEMMATIZE: {"lemmatize", "lemmatization", "lemma", "lemmatizer"},
    TASK_TAG: {"tag", "tagger", "pos", "postag", "upos"},
}

# Normalized alias lookup
TASK_ALIASES: Dict[str, Set[str]] = {}
TASK_LOOKUP: Dict[str, str] = {}

for canonical, aliases in _TASK_ALIAS_DEFINITIONS.items():
    normalized_aliases = {canonical.lower()}
    normalized_aliases.update(alias.lower() for alias in aliases)
    TASK_ALIASES[canonical] = normalized_aliases
    for alias in normalized_aliases:
        TASK_LOOKUP[alias] = canonical


def resolve_task(name: str) -> str:
    """Map a task name or alias to its canonical name."""
    canonical = TASK_LOOKUP.get((name or "").strip().lower())
    if canonical is None:
        raise ConfigurationError(
            f"Unknown task '{name}'. Supported tasks: {', '.join(sorted(TASK_DESCRIPTIONS))}"
        )
    return canonical
