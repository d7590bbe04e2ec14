"""
Stats Aggregator - per-group statistics over a chronological history slice.

Every function here is a pure function of its input slice: no caches, no
module state. The same slice always yields the same numbers, which lets the
fitness simulation reuse them window after window.

Decay: the i-th record of an n-record slice carries weight decay^(n-1-i),
so the newest record always weighs 1.0.
"""

from collections import Counter
from dataclasses import dataclass, field

import numpy as np

import sys
sys.path.insert(0, '.')
from config import TOTAL_NUMBERS
from app.engine.groups import ALL_GROUPS
from app.engine.hit_zone import group_hit_zone
from app.engine.spins import STATUS_PENDING, STATUS_SUCCESS


def decay_weights(n, decay):
    """Weights oldest → newest for an n-record slice."""
    if n <= 0:
        return np.zeros(0)
    return np.power(float(decay), np.arange(n - 1, -1, -1, dtype=float))


@dataclass
class TrendStats:
    averages: dict = field(default_factory=dict)
    current_streaks: dict = field(default_factory=dict)
    streak_data: dict = field(default_factory=dict)
    last_success_state: list = field(default_factory=list)
    resolved_count: int = 0


def calculate_trend_stats(history, groups=ALL_GROUPS):
    """Hit streaks per group.

    Walking oldest → newest, a group's running counter grows on a hit and is
    flushed into its streak list on a miss. The average covers completed
    streaks plus the open one.
    """
    stats = TrendStats()
    for group in groups:
        stats.streak_data[group.id] = []
        stats.current_streaks[group.id] = 0

    for item in history:
        if item.status == STATUS_PENDING:
            continue
        stats.resolved_count += 1
        for group in groups:
            if group.id not in item.per_group_hit:
                continue
            if item.per_group_hit[group.id]:
                stats.current_streaks[group.id] += 1
            else:
                if stats.current_streaks[group.id] > 0:
                    stats.streak_data[group.id].append(stats.current_streaks[group.id])
                stats.current_streaks[group.id] = 0
        if item.status == STATUS_SUCCESS:
            stats.last_success_state = list(item.hit_groups)

    for group in groups:
        streaks = list(stats.streak_data[group.id])
        if stats.current_streaks[group.id] > 0:
            streaks.append(stats.current_streaks[group.id])
        stats.averages[group.id] = sum(streaks) / len(streaks) if streaks else 0.0

    return stats


def get_board_stats(history, decay, groups=ALL_GROUPS):
    """Decayed occurrence and hit totals per group.

    Returns:
        dict group_id → {'success': float, 'total': float}
    """
    board = {group.id: {'success': 0.0, 'total': 0.0} for group in groups}
    weights = decay_weights(len(history), decay)

    for i, item in enumerate(history):
        if item.status == STATUS_PENDING:
            continue
        weight = float(weights[i])
        for group in groups:
            board[group.id]['total'] += weight
        if item.status == STATUS_SUCCESS:
            for group_id in item.hit_groups:
                if group_id in board:
                    board[group_id]['success'] += weight
    return board


def hit_rate(board_stats, group_id):
    """Decayed hit rate as a percentage (0 when the group never occurred)."""
    entry = board_stats.get(group_id)
    if not entry or entry['total'] <= 0:
        return 0.0
    return entry['success'] / entry['total'] * 100.0


def run_neighbour_analysis(history, decay, groups=ALL_GROUPS, dynamic=False):
    """Hot zone scores: each successful record spreads its decayed weight
    over the realized hit zone of every group that hit.

    Returns:
        np.array of shape (37,)
    """
    scores = np.zeros(TOTAL_NUMBERS)
    weights = decay_weights(len(history), decay)
    by_id = {group.id: group for group in groups}

    for i, item in enumerate(history):
        if item.status != STATUS_SUCCESS:
            continue
        weight = weights[i]
        for group_id in item.hit_groups:
            group = by_id.get(group_id)
            if group is None:
                continue
            zone = group_hit_zone(group, item.num1, item.num2, item.winning_number, dynamic)
            scores[zone] += weight
    return scores


def calculate_conditional_probabilities(history, groups=ALL_GROUPS, min_sample_size=1):
    """P(group hits next | group came closest on the previous spin).

    Returns:
        dict group_id → {'probability': float, 'sample_size': int}
        probability is 0 below min_sample_size.
    """
    resolved = [item for item in history
                if item.status != STATUS_PENDING and item.winning_number is not None]
    relevant = Counter()
    hits = Counter()

    for previous, current in zip(resolved, resolved[1:]):
        group_id = previous.closest_group_id
        if group_id is None:
            continue
        relevant[group_id] += 1
        if current.per_group_hit.get(group_id):
            hits[group_id] += 1

    result = {}
    for group in groups:
        sample = relevant[group.id]
        if sample > 0 and sample >= min_sample_size:
            probability = hits[group.id] / sample
        else:
            probability = 0.0
        result[group.id] = {'probability': probability, 'sample_size': sample}
    return result


def calculate_rolling_performance(history, window_size, min_plays):
    """Win/loss record of the most recent recommended plays.

    Only records that carried a positive-score recommendation count.
    The loss streak counts consecutive misses back from the newest play.
    """
    plays = [item for item in reversed(history)
             if item.winning_number is not None
             and item.recommended_group_id
             and item.recommendation_score > 0][:int(window_size)]

    if len(plays) < min_plays:
        return {'sufficient_data': False, 'plays': len(plays), 'wins': 0,
                'losses': 0, 'win_rate': 0.0, 'current_loss_streak': 0}

    wins = sum(1 for item in plays if item.recommendation_hit)
    losses = len(plays) - wins
    loss_streak = 0
    for item in plays:
        if item.recommendation_hit:
            break
        loss_streak += 1

    return {
        'sufficient_data': True,
        'plays': len(plays),
        'wins': wins,
        'losses': losses,
        'win_rate': wins / len(plays) * 100.0 if plays else 0.0,
        'current_loss_streak': loss_streak,
    }


def analyze_factor_shift(history, window_size, diversity_threshold, min_dominance_percent):
    """Is the factor behind recent successful recommendations changing?

    High diversity of primary factors, or no factor dominating, means the
    table is shifting away from what the scorer has been learning.
    """
    recent = [item for item in reversed(history)
              if item.status == STATUS_SUCCESS and item.primary_factor][:int(window_size)]

    if len(recent) < 3:
        return {'sufficient_data': False, 'is_shifting': False,
                'dominant_factor': None, 'factor_distribution': {}}

    counts = Counter(item.primary_factor for item in recent)
    dominant_factor, max_count = counts.most_common(1)[0]
    dominance_percent = max_count / len(recent) * 100.0
    diversity_ratio = len(counts) / len(recent)
    is_shifting = (diversity_ratio >= diversity_threshold
                   or dominance_percent < min_dominance_percent)

    return {
        'sufficient_data': True,
        'is_shifting': is_shifting,
        'dominant_factor': dominant_factor,
        'factor_distribution': dict(counts),
        'diversity_ratio': diversity_ratio,
        'dominance_percent': dominance_percent,
    }
