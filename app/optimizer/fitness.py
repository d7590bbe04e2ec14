"""
Fitness Evaluator - composite fitness of one genome over a spin history.

The history is cut into three non-overlapping windows weighted oldest →
newest (0.8 / 1.0 / 1.2). Each window is replayed through the live engine
with fresh adaptive influences and its counted plays are scored:

  fitness(window) = wilson × stability × sample confidence × calibration
                    × recency bonus × streak consistency × window weight

Windows with too few usable spins or with no plays are excluded. The final
fitness is the geometric mean of the remaining nonzero window fitnesses,
0 when none remain.
"""

import math
from dataclasses import dataclass

import numpy as np
from scipy.stats import pearsonr

import sys
sys.path.insert(0, '.')
from config import (
    FITNESS_WINDOW_WEIGHTS, FITNESS_MIN_WINDOW_SPINS, WILSON_Z,
    SAMPLE_SIZE_FULL_CONFIDENCE, STABILITY_MIN_SAMPLES, CALIBRATION_MIN_SAMPLES,
    ROLLING_WIN_RATE_WINDOW, RECENCY_HALF_LIFE, RECENCY_BONUS_SCALE,
    STREAK_CONSISTENCY_WEIGHT,
)
from app.engine.groups import ALL_GROUPS
from app.engine.simulation import simulate_history
from app.optimizer.parameters import RunToggles


@dataclass(frozen=True)
class Window:
    start_index: int
    end_index: int      # exclusive
    weight: float

    @property
    def size(self):
        return self.end_index - self.start_index


def split_windows(n, weights=FITNESS_WINDOW_WEIGHTS):
    """Equal contiguous windows over n records; the newest takes the remainder."""
    count = len(weights)
    if count == 0 or n <= 0:
        return []
    size = n // count
    windows = []
    for i, weight in enumerate(weights):
        start = i * size
        end = n if i == count - 1 else start + size
        windows.append(Window(start, end, weight))
    return windows


# ─── Statistics ─────────────────────────────────────────────────────

def wilson_lower_bound(wins, total, z=WILSON_Z):
    """Lower bound of the Wilson score interval; 0 for an empty sample."""
    if total <= 0:
        return 0.0
    p_hat = wins / total
    z2 = z * z
    centre = p_hat + z2 / (2 * total)
    spread = z * math.sqrt((p_hat * (1 - p_hat) + z2 / (4 * total)) / total)
    return max(0.0, (centre - spread) / (1 + z2 / total))


def coefficient_of_variation(values):
    """Population std / mean; 0 for fewer than two values or a zero mean."""
    if len(values) < 2:
        return 0.0
    arr = np.asarray(values, dtype=float)
    mean = arr.mean()
    if mean == 0:
        return 0.0
    return float(arr.std() / mean)


def rolling_win_rates(hits, window=ROLLING_WIN_RATE_WINDOW):
    """Win rate of every full run of `window` consecutive plays."""
    if len(hits) < window:
        return []
    arr = np.asarray(hits, dtype=float)
    sums = np.convolve(arr, np.ones(window), mode='valid')
    return list(sums / window)


def stability_score(rates):
    if len(rates) < STABILITY_MIN_SAMPLES:
        return 1.0
    return 1.0 / (1.0 + coefficient_of_variation(rates))


def sample_size_confidence(total):
    return min(1.0, total / SAMPLE_SIZE_FULL_CONFIDENCE)


def calibration_score(scores, hits):
    """0.5 + 0.5 × Pearson r(score, hit); neutral 0.5 when r is undefined."""
    if len(scores) < CALIBRATION_MIN_SAMPLES:
        return 0.5
    x = np.asarray(scores, dtype=float)
    y = np.asarray(hits, dtype=float)
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.5
    r = float(pearsonr(x, y)[0])
    if math.isnan(r):
        return 0.5
    return 0.5 + 0.5 * max(-1.0, min(1.0, r))


def recency_bonus(hits, half_life=RECENCY_HALF_LIFE):
    """Half-life weighted win rate; a bonus above 1 only past 50%."""
    if not hits:
        return 1.0
    n = len(hits)
    weights = np.power(0.5, np.arange(n - 1, -1, -1, dtype=float) / half_life)
    rate = float(np.dot(weights, np.asarray(hits, dtype=float)) / weights.sum())
    if rate > 0.5:
        return 1.0 + RECENCY_BONUS_SCALE * (rate - 0.5)
    return 1.0


def win_streak_lengths(hits):
    lengths = []
    run = 0
    for hit in hits:
        if hit:
            run += 1
        elif run:
            lengths.append(run)
            run = 0
    if run:
        lengths.append(run)
    return lengths


def streak_consistency_bonus(hits):
    cv = coefficient_of_variation(win_streak_lengths(hits))
    return 1.0 + STREAK_CONSISTENCY_WEIGHT * (1.0 / (1.0 + cv))


def geometric_mean(values):
    """Geometric mean of the positive values; 0 if there are none."""
    positive = [v for v in values if v > 0]
    if not positive:
        return 0.0
    return float(np.exp(np.mean(np.log(positive))))


# ─── Window Scoring ─────────────────────────────────────────────────

@dataclass(frozen=True)
class WindowScore:
    weight: float
    plays: int = 0
    wins: int = 0
    wilson: float = 0.0
    stability: float = 1.0
    confidence: float = 0.0
    calibration: float = 0.5
    recency: float = 1.0
    streak_bonus: float = 1.0
    fitness: float = 0.0

    @property
    def losses(self):
        return self.plays - self.wins

    @property
    def excluded(self):
        return self.plays == 0


def score_window(plays, weight):
    """Composite fitness of one window's plays."""
    if not plays:
        return WindowScore(weight=weight)

    hits = [bool(play.hit) for play in plays]
    scores = [play.score for play in plays]
    total = len(hits)
    wins = sum(hits)

    wilson = wilson_lower_bound(wins, total)
    stability = stability_score(rolling_win_rates(hits))
    confidence = sample_size_confidence(total)
    calibration = calibration_score(scores, hits)
    recency = recency_bonus(hits)
    streak_bonus = streak_consistency_bonus(hits)

    fitness = wilson * stability * confidence * calibration * recency * streak_bonus * weight
    if not math.isfinite(fitness):
        fitness = 0.0

    return WindowScore(weight=weight, plays=total, wins=wins, wilson=wilson,
                       stability=stability, confidence=confidence,
                       calibration=calibration, recency=recency,
                       streak_bonus=streak_bonus, fitness=fitness)


class FitnessEvaluator:
    """Scores genomes against one fixed history snapshot."""

    def __init__(self, history, toggles=None, groups=ALL_GROUPS,
                 weights=FITNESS_WINDOW_WEIGHTS, min_window_spins=FITNESS_MIN_WINDOW_SPINS):
        self.history = tuple(history)
        self.toggles = toggles or RunToggles()
        self.groups = tuple(groups)
        self.windows = split_windows(len(self.history), weights)
        self.min_window_spins = min_window_spins

    def window_scores(self, genome, cancel_token=None):
        """WindowScore per window with enough usable spins."""
        rates = genome.learning_rates()
        scores = []
        for window in self.windows:
            records = self.history[window.start_index:window.end_index]
            usable = sum(1 for record in records if record.is_resolved)
            if usable < self.min_window_spins:
                continue
            plays = list(simulate_history(records, genome, rates, self.toggles,
                                          self.groups, cancel_token))
            scores.append(score_window(plays, window.weight))
        return scores

    def evaluate(self, genome, cancel_token=None):
        """Fitness of one genome; 0 for a missing or malformed genome."""
        if genome is None or not genome.is_valid():
            return 0.0
        scores = self.window_scores(genome, cancel_token)
        return geometric_mean([s.fitness for s in scores if not s.excluded])
