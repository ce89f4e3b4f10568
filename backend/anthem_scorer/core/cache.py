"""In-memory memoization of scoring results."""

from collections import OrderedDict
from threading import Lock
from typing import Any, Optional, Tuple

from anthem_scorer.core.schemas import AnthemResult, ScoreOptions
from anthem_scorer.pipeline.scorer import AnthemScorer, resolve_options

CacheKey = Tuple[str, str, Tuple[Any, ...]]


class ScoreCache:
    """
    Bounded LRU store of scoring results.

    Owned by the caller (for example an exam UI re-scoring as the user
    types); the scoring engine itself never caches. Results are copied on
    the way in and out, so a caller changing its result cannot affect
    later hits.
    """

    def __init__(self, max_entries: int = 128):
        """
        Initialize empty cache.

        Args:
            max_entries: Results kept before the least recently used is evicted
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._results: "OrderedDict[CacheKey, AnthemResult]" = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(submitted_text: str, reference_version: str, options: ScoreOptions) -> CacheKey:
        return (
            submitted_text,
            reference_version,
            tuple(sorted(options.model_dump().items()))
        )

    def get(self, key: CacheKey) -> Optional[AnthemResult]:
        """
        Retrieve a cached result and mark it recently used.

        Returns:
            A private copy of the cached AnthemResult, None if not cached
        """
        with self._lock:
            result = self._results.get(key)
            if result is None:
                self.misses += 1
                return None
            self._results.move_to_end(key)
            self.hits += 1
            return result.model_copy(deep=True)

    def put(self, key: CacheKey, result: AnthemResult) -> None:
        """Store a copy of a result, evicting the least recently used entry when full."""
        with self._lock:
            self._results[key] = result.model_copy(deep=True)
            self._results.move_to_end(key)
            while len(self._results) > self.max_entries:
                self._results.popitem(last=False)

    def score_cached(
        self,
        scorer: AnthemScorer,
        submitted_text: Any,
        options: Any = None,
        timing: Any = None
    ) -> AnthemResult:
        """
        Score through the cache.

        Results with timing depend on the telemetry as well, so calls with a
        timing signal bypass the cache.

        Args:
            scorer: Scorer to use on a miss
            submitted_text: Submission
            options: Scoring options (default: the scorer's options)
            timing: Optional typing telemetry

        Returns:
            AnthemResult
        """
        if timing is not None or not isinstance(submitted_text, str):
            return scorer.score(submitted_text, options=options, timing=timing)

        opts = scorer.options if options is None else resolve_options(options)
        key = self.make_key(submitted_text, scorer.reference.version, opts)
        cached = self.get(key)
        if cached is not None:
            return cached

        result = scorer.score(submitted_text, options=opts)
        self.put(key, result)
        return result

    def clear(self) -> None:
        """Drop all cached results."""
        with self._lock:
            self._results.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._results)
