"""
Process-wide model cache for flexilemma.

Loading a model can take a while, so tagger and lemmatizer instances for the
same language share one ModelArtifact. The cache guarantees that a model is
loaded at most once per language even when several threads ask for it at the
same time:

* hits read the registry without taking any lock;
* a miss takes the lock of its own language only, so loads for different
  languages run in parallel;
* threads waiting on the same language block until the first load finishes
  and then read the cached artifact;
* a failed load stores nothing, and the next request tries again.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import BinaryIO, Callable, Dict, List, Optional, Tuple

from langcodes import standardize_tag, tag_is_valid

from .config import AnnotatorConfig
from .errors import ConfigurationError
from .models import ModelArtifact, load_model

logger = logging.getLogger(__name__)

ModelLoader = Callable[[], ModelArtifact]


def normalize_language(language: Optional[str]) -> str:
    """
    Return the standard BCP 47 form of a language code ("EN" -> "en", "eng" -> "en").

    Raises ConfigurationError when the code is missing or not a valid tag.
    """
    if not language or not str(language).strip():
        raise ConfigurationError("The 'language' property is required")
    code = str(language).strip()
    if not tag_is_valid(code):
        raise ConfigurationError(f"Invalid language code '{language}'")
    return standardize_tag(code)


class ModelCache:
    """Thread-safe registry mapping language codes to loaded model artifacts."""

    def __init__(self, name: str = "model"):
        self.name = name
        self._models: Dict[str, ModelArtifact] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self.load_times: Dict[str, float] = {}

    def _lock_for(self, language: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._key_locks.get(language)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[language] = lock
            return lock

    def get(self, language: str) -> Optional[ModelArtifact]:
        return self._models.get(normalize_language(language))

    def __contains__(self, language: object) -> bool:
        if not isinstance(language, str):
            return False
        return self.get(language) is not None

    def __len__(self) -> int:
        return len(self._models)

    def languages(self) -> List[str]:
        return sorted(self._models)

    def get_or_load(self, language: str, loader: ModelLoader) -> ModelArtifact:
        """
        Return the cached model for ``language``, running ``loader`` on a miss.

        Concurrent callers for the same language share a single call to ``loader``.
        Exceptions from ``loader`` propagate and leave the cache unchanged.
        """
        key = normalize_language(language)
        model = self._models.get(key)
        if model is not None:
            return model
        with self._lock_for(key):
            model = self._models.get(key)
            if model is not None:
                return model
            model, elapsed = timed_load(loader, key, self.name)
            self.load_times[key] = elapsed
            self._models[key] = model
            return model

    def evict(self, language: str) -> Optional[ModelArtifact]:
        key = normalize_language(language)
        with self._lock_for(key):
            self.load_times.pop(key, None)
            return self._models.pop(key, None)

    def clear(self) -> None:
        """
        Drop every cached model together with its per-language lock.

        Loads already in flight are not waited for; they add their model back
        once they finish.
        """
        with self._registry_lock:
            self._models.clear()
            self.load_times.clear()
            self._key_locks.clear()


def timed_load(loader: ModelLoader, language: str, name: str = "model") -> Tuple[ModelArtifact, float]:
    """Run a model loader and report how long it took, in seconds."""
    start = time.perf_counter()
    model = loader()
    elapsed = time.perf_counter() - start
    logger.info("%s model for '%s' loaded in %d ms", name, language, round(elapsed * 1000))
    return model, elapsed


def acquire_model(
    config: AnnotatorConfig,
    cache: ModelCache,
    *,
    component: str,
    stream: Optional[BinaryIO] = None,
) -> ModelArtifact:
    """
    Resolve the model for a tagger or lemmatizer.

    With ``config.use_model_cache`` the shared ``cache`` is consulted first and
    the model source is only needed on a miss; otherwise the model is loaded
    from ``stream`` or ``config.model`` on every call.
    """
    language = normalize_language(config.language)

    def loader() -> ModelArtifact:
        source = stream if stream is not None else config.model
        if source is None:
            raise ConfigurationError(
                f"No {component} model given for language '{language}' and none is cached"
            )
        return load_model(source, language=language)

    if config.use_model_cache:
        model = cache.get_or_load(language, loader)
    else:
        model, _ = timed_load(loader, language, cache.name)
    if model.component != component:
        raise ConfigurationError(
            f"Model for language '{language}' is a {model.component} model, expected a {component} model"
        )
    return model


# Shared caches; pass a dedicated ModelCache to a tagger or lemmatizer to isolate it
TAGGER_MODELS = ModelCache("tagger")
LEMMATIZER_MODELS = ModelCache("lemmatizer")
