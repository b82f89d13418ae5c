"""
Grid search for the component weight vector.

Candidates are the points of the 5-dimensional simplex lattice with a given
step (every weight a multiple of `step`, all weights summing to 1). Each
candidate is scored by a full, independent replay in a fresh Simulator, so
candidates can be evaluated in any order and on any worker. The only shared
step is the final reduction to the best candidate, done in the caller after
all workers have finished.

Lattice size is C(n + 4, 4) with n = 1 / step: 10,626 candidates at 0.05,
1,001 at 0.10.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping, Sequence

import pandas as pd

from statmind.config import ENGINE_CONFIG, OPTIMIZER_CONFIG, WEIGHT_KEYS, EngineConfig
from statmind.engine.combiner import WeightVector
from statmind.engine.errors import ConfigurationError
from statmind.engine.game import Game, completed_games
from statmind.engine.simulator import Simulator
from statmind.engine.team_state import SeasonTransition

logger = logging.getLogger(__name__)

_EPS = 1e-9


# ---------------------------------------------------------------------------
# Candidate generation
# ---------------------------------------------------------------------------


def _lattice_divisions(step: float) -> int:
    if not 0 < step <= 1:
        raise ConfigurationError(f"step must be in (0, 1]; got {step}")
    n = round(1.0 / step)
    if abs(n * step - 1.0) > 1e-6:
        raise ConfigurationError(f"step must divide 1.0 evenly; got {step}")
    return n


def _compositions(total: int, parts: int) -> Iterator[tuple[int, ...]]:
    """All ways to write `total` as an ordered sum of `parts` non-negative ints."""
    if parts == 1:
        yield (total,)
        return
    for first in range(total + 1):
        for rest in _compositions(total - first, parts - 1):
            yield (first,) + rest


def simplex_lattice(
    step: float = OPTIMIZER_CONFIG.step,
    bounds: Mapping[str, tuple[float, float]] | None = None,
) -> Iterator[dict[str, float]]:
    """
    Yield weight mappings on the simplex lattice, in a fixed order.

    Args:
        step: Lattice spacing; 1 / step must be an integer.
        bounds: Optional inclusive (min, max) per weight key, e.g.
            {"elo": (0.15, 0.35)}. Keys not listed are unbounded.
    """
    n = _lattice_divisions(step)
    bounds = dict(bounds or {})
    unknown = set(bounds) - set(WEIGHT_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown weight keys in bounds: {sorted(unknown)}")

    for combo in _compositions(n, len(WEIGHT_KEYS)):
        weights = {key: round(k / n, 10) for key, k in zip(WEIGHT_KEYS, combo)}
        if all(
            lo - _EPS <= weights[key] <= hi + _EPS
            for key, (lo, hi) in bounds.items()
        ):
            yield weights


def lattice_size(step: float) -> int:
    """Number of unbounded lattice points for a step size."""
    n = _lattice_divisions(step)
    parts = len(WEIGHT_KEYS)
    return math.comb(n + parts - 1, parts - 1)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CandidateResult:
    index: int
    weights: dict[str, float]
    accuracy: float = 0.0
    correct: int = 0
    total: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class OptimizationResult:
    best_weights: WeightVector | None
    best_accuracy: float
    results: list[CandidateResult] = field(default_factory=list)

    @property
    def evaluated(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> list[CandidateResult]:
        return [r for r in self.results if not r.ok]

    def to_frame(self) -> pd.DataFrame:
        """Every candidate, best first (failed candidates last)."""
        rows = []
        for r in self.results:
            row = {"candidate": r.index, **r.weights}
            row.update(accuracy=r.accuracy, correct=r.correct, total=r.total, error=r.error)
            rows.append(row)
        df = pd.DataFrame(rows)
        if df.empty:
            return df
        df["failed"] = df["error"].notna()
        return df.sort_values(
            ["failed", "accuracy", "candidate"], ascending=[True, False, True]
        ).reset_index(drop=True)


def _evaluate_chunk(
    chunk: Sequence[tuple[int, dict[str, float]]],
    games: Sequence[Game],
    transition: str,
    config: EngineConfig,
) -> list[CandidateResult]:
    """Replay `games` once per candidate. Runs inside a worker."""
    out = []
    for index, weights in chunk:
        try:
            sim = Simulator(WeightVector.from_mapping(weights), transition=transition, config=config)
            result = sim.run(games)
        except Exception as e:  # one bad candidate must not end the search
            out.append(CandidateResult(index, weights, error=f"{type(e).__name__}: {e}"))
            continue
        out.append(
            CandidateResult(
                index,
                weights,
                accuracy=result.accuracy,
                correct=result.correct,
                total=result.total,
            )
        )
    return out


def _chunked(items: list, size: int) -> Iterator[list]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


def _make_executor(kind: str, max_workers: int | None) -> Executor | None:
    if kind == "serial":
        return None
    if kind == "process":
        return ProcessPoolExecutor(max_workers=max_workers)
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=max_workers)
    raise ConfigurationError(
        f"Unknown executor '{kind}'. Expected 'process', 'thread' or 'serial'."
    )


def _select_best(results: list[CandidateResult]) -> CandidateResult | None:
    ok = [r for r in results if r.ok]
    if not ok:
        return None
    # highest accuracy; earliest lattice point on ties
    return max(ok, key=lambda r: (r.accuracy, -r.index))


def optimize_weights(
    games: Iterable[Game],
    step: float = OPTIMIZER_CONFIG.step,
    bounds: Mapping[str, tuple[float, float]] | None = None,
    transition: SeasonTransition | str = SeasonTransition.CARRY,
    config: EngineConfig | None = None,
    executor: str = OPTIMIZER_CONFIG.executor,
    max_workers: int | None = OPTIMIZER_CONFIG.max_workers,
    chunksize: int = OPTIMIZER_CONFIG.chunksize,
    candidates: Iterable[Mapping[str, float]] | None = None,
) -> OptimizationResult:
    """
    Find the weight vector with the best backtest accuracy over `games`.

    Parameters
    ----------
    games:
        Historical games; only completed games are replayed.
    step, bounds:
        Lattice definition (see simplex_lattice). Ignored if `candidates`
        is given.
    transition:
        Season transition policy used by every replay.
    executor:
        "process" (default), "thread" or "serial".
    candidates:
        Explicit weight mappings to evaluate instead of the lattice. Each is
        validated up front; an invalid one raises WeightValidationError.

    Returns
    -------
    OptimizationResult
        The best vector (None if every candidate failed), its accuracy, and
        the per-candidate results in lattice order.
    """
    config = config or ENGINE_CONFIG
    policy = SeasonTransition.parse(transition).value
    replay = completed_games(games)
    if not replay:
        raise ValueError("No completed games to optimize over.")

    if candidates is not None:
        # invalid caller-supplied vectors are fatal, before any replay starts
        indexed = [(i, WeightVector.from_mapping(w).as_dict()) for i, w in enumerate(candidates)]
    else:
        indexed = list(enumerate(simplex_lattice(step, bounds)))
    if not indexed:
        raise ValueError("No weight candidates to evaluate (check step and bounds).")
    if chunksize < 1:
        raise ConfigurationError(f"chunksize must be >= 1; got {chunksize}")

    logger.info(
        "Evaluating %d weight candidates over %d games (executor=%s)",
        len(indexed),
        len(replay),
        executor,
    )

    pool = _make_executor(executor, max_workers)
    results: list[CandidateResult] = []
    best_so_far = -1.0

    def _collect(chunk_results: list[CandidateResult]) -> None:
        nonlocal best_so_far
        for r in chunk_results:
            results.append(r)
            if not r.ok:
                logger.warning("Candidate %d failed: %s", r.index, r.error)
            elif r.accuracy > best_so_far:
                best_so_far = r.accuracy
                logger.info("New best %.2f%% with %s", r.accuracy * 100, r.weights)

    if pool is None:
        for chunk in _chunked(indexed, chunksize):
            _collect(_evaluate_chunk(chunk, replay, policy, config))
    else:
        with pool:
            futures = {
                pool.submit(_evaluate_chunk, chunk, replay, policy, config): chunk
                for chunk in _chunked(indexed, chunksize)
            }
            for done, future in enumerate(as_completed(futures), start=1):
                chunk = futures[future]
                try:
                    _collect(future.result())
                except Exception as e:
                    logger.exception("Worker failed on %d candidates", len(chunk))
                    _collect(
                        [
                            CandidateResult(i, w, error=f"{type(e).__name__}: {e}")
                            for i, w in chunk
                        ]
                    )
                if done % 50 == 0:
                    logger.info("Finished %d/%d chunks", done, len(futures))

    results.sort(key=lambda r: r.index)
    best = _select_best(results)
    if best is None:
        logger.error("All %d weight candidates failed", len(results))
        return OptimizationResult(best_weights=None, best_accuracy=0.0, results=results)

    logger.info(
        "Best accuracy %.2f%% (%d/%d) with %s",
        best.accuracy * 100,
        best.correct,
        best.total,
        best.weights,
    )
    return OptimizationResult(
        best_weights=WeightVector.from_mapping(best.weights),
        best_accuracy=best.accuracy,
        results=results,
    )
