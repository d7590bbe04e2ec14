"""
Recommendation Scorer - picks the group to play for the next spin.

Each group earns raw points from independent factors (hit rate, streak,
proximity to the last winning pocket, hot zone weighting, an external
probability signal and conditional statistics). Raw points are scaled by the
adaptive influence of their factor and summed. The best group is then
classified into a signal tier:

  Strong Play / Play / Wait   - threshold tiers
  Avoid Play                  - table change warning
  Wait for Signal             - no group scored above zero
"""

import math
from dataclasses import dataclass, field
from typing import Optional

import sys
sys.path.insert(0, '.')
from config import (
    FACTOR_HIT_RATE, FACTOR_STREAK, FACTOR_PROXIMITY, FACTOR_HOT_ZONE,
    FACTOR_AI_CONFIDENCE, FACTOR_STATISTICAL_TRENDS, DEFAULT_PRIMARY_FACTOR,
    SIGNAL_STRONG_PLAY, SIGNAL_PLAY, SIGNAL_WAIT, SIGNAL_AVOID, SIGNAL_NO_PLAY,
    NEIGHBOUR_FOCUS_COUNT, OVERLAP_MAX_PENALTY, LOW_POCKET_DISTANCE_BOOST_POINTS,
)
from app.engine.groups import ALL_GROUPS, get_terminals
from app.engine.hit_zone import get_hit_zone
from app.engine.stats import (
    calculate_trend_stats, get_board_stats, hit_rate, run_neighbour_analysis,
    calculate_conditional_probabilities, calculate_rolling_performance,
    analyze_factor_shift,
)
from app.engine.wheel import min_zone_distance

PLAY_SIGNALS = (SIGNAL_PLAY, SIGNAL_STRONG_PLAY)


@dataclass
class Candidate:
    group_id: str
    label: str
    score: float
    details: dict = field(default_factory=dict)

    @property
    def primary_factor(self):
        return self.details.get('primary_driving_factor')


@dataclass
class Recommendation:
    best: Optional[Candidate]
    candidates: list
    signal: str
    reason: str
    focus_numbers: list = field(default_factory=list)

    @property
    def has_play(self):
        """A positive-score candidate exists."""
        return self.best is not None

    @property
    def score(self):
        return self.best.score if self.best else 0.0


def overlap_penalty(zone, failed_zones):
    """1.0 with no overlap, down to 1 - OVERLAP_MAX_PENALTY for full overlap."""
    failed = set()
    for failed_zone in failed_zones or ():
        failed.update(failed_zone)
    if not failed or not zone:
        return 1.0
    overlap = sum(1 for pocket in zone if pocket in failed) / len(zone)
    return 1.0 - overlap * OVERLAP_MAX_PENALTY


class RecommendationScorer:
    """Scores every active group against a resolved history slice."""

    def __init__(self, strategy, toggles, groups=ALL_GROUPS):
        self.strategy = strategy
        self.toggles = toggles
        self.groups = tuple(groups)

    # ─── Statistics ─────────────────────────────────────────────────

    def collect_stats(self, history):
        """All history-derived views the scorer reads, computed once."""
        s = self.strategy
        stats = {
            'trend': calculate_trend_stats(history, self.groups),
            'board': get_board_stats(history, s.decay_factor, self.groups),
            'neighbours': run_neighbour_analysis(
                history, s.decay_factor, self.groups,
                self.toggles.use_dynamic_terminal_neighbour_count),
            'conditional': None,
            'rolling': None,
            'factor_shift': None,
        }
        if self.toggles.use_conditional_probability:
            stats['conditional'] = calculate_conditional_probabilities(
                history, self.groups, int(s.min_conditional_sample_size))
        if self.toggles.use_table_change_warnings:
            stats['rolling'] = calculate_rolling_performance(
                history, int(s.warning_rolling_window_size), int(s.warning_min_plays_for_eval))
            stats['factor_shift'] = analyze_factor_shift(
                history, int(s.warning_factor_shift_window_size),
                s.warning_factor_shift_diversity_threshold,
                s.warning_factor_shift_min_dominance_percent)
        return stats

    # ─── Candidate scoring ──────────────────────────────────────────

    def score_group(self, group, num1, num2, stats, influences,
                    last_winning_number=None, external_probabilities=None,
                    failed_zones=None):
        s = self.strategy
        toggles = self.toggles

        base = group.base(num1, num2)
        zone = get_hit_zone(base, get_terminals(base), last_winning_number,
                            toggles.use_dynamic_terminal_neighbour_count)
        group_hit_rate = hit_rate(stats['board'], group.id)
        current_streak = stats['trend'].current_streaks.get(group.id, 0)

        raw = {}
        reasons = []

        hit_rate_points = max(0.0, group_hit_rate - s.hit_rate_threshold) * s.hit_rate_multiplier
        raw[FACTOR_HIT_RATE] = hit_rate_points
        if hit_rate_points > 0:
            reasons.append(FACTOR_HIT_RATE)

        streak_points = min(s.max_streak_points, current_streak * s.streak_multiplier)
        raw[FACTOR_STREAK] = streak_points
        if streak_points > 0:
            reasons.append(FACTOR_STREAK)

        predictive_distance = math.inf
        if last_winning_number is not None:
            predictive_distance = min_zone_distance(zone, last_winning_number)

        if toggles.use_proximity_boost and last_winning_number is not None:
            if predictive_distance <= s.proximity_max_distance:
                proximity_points = (s.proximity_max_distance - predictive_distance) * s.proximity_multiplier
                raw[FACTOR_PROXIMITY] = proximity_points
                if proximity_points > 0:
                    reasons.append(FACTOR_PROXIMITY)

        if toggles.use_weighted_zone:
            zone_score = float(stats['neighbours'][zone].sum())
            hot_zone_points = min(s.max_neighbour_points, zone_score) * s.neighbour_multiplier
            raw[FACTOR_HOT_ZONE] = hot_zone_points
            if hot_zone_points > 0:
                reasons.append(FACTOR_HOT_ZONE)

        if external_probabilities and s.ai_confidence_multiplier > 0:
            probability = float(external_probabilities.get(group.id, 0.0) or 0.0)
            if probability > 0:
                ai_points = probability * s.ai_confidence_multiplier
                raw[FACTOR_AI_CONFIDENCE] = ai_points
                if ai_points > s.min_ai_points_for_reason:
                    reasons.append(FACTOR_AI_CONFIDENCE)

        if stats['conditional'] is not None:
            probability = stats['conditional'][group.id]['probability']
            if probability > 0:
                trend_points = probability * s.conditional_prob_multiplier
                raw[FACTOR_STATISTICAL_TRENDS] = trend_points
                reasons.append(FACTOR_STATISTICAL_TRENDS)

        # Influenced sum and the factor that contributed most
        final_score = 0.0
        primary_factor = None
        highest = 0.0
        for factor, points in raw.items():
            influenced = points * influences.get(factor)
            final_score += influenced
            if influenced > highest:
                highest = influenced
                primary_factor = factor
        if primary_factor is None:
            primary_factor = reasons[0] if reasons else DEFAULT_PRIMARY_FACTOR

        low_pocket_boost = False
        if (toggles.use_lowest_pocket_distance and last_winning_number is not None
                and predictive_distance != math.inf):
            if predictive_distance <= 1:
                final_score += s.low_pocket_distance_boost_multiplier * LOW_POCKET_DISTANCE_BOOST_POINTS
                low_pocket_boost = True
            elif predictive_distance >= 5:
                final_score *= s.high_pocket_distance_suppress_multiplier

        penalty = 1.0
        if toggles.use_overlap_penalty and failed_zones:
            penalty = 1.0 - (1.0 - overlap_penalty(zone, failed_zones)) * s.overlap_penalty_weight
            final_score *= penalty

        details = {
            'base_number': base,
            'raw_base_number': group.raw_base(num1, num2),
            'hit_zone': zone,
            'hit_rate': group_hit_rate,
            'avg_trend': stats['trend'].averages.get(group.id, 0.0),
            'current_streak': current_streak,
            'predictive_distance': None if predictive_distance == math.inf else predictive_distance,
            'individual_scores': raw,
            'reason': reasons,
            'base_score': hit_rate_points + streak_points,
            'final_score': final_score,
            'primary_driving_factor': primary_factor,
            'adaptive_influence_used': influences.get(primary_factor),
            'low_pocket_boost_applied': low_pocket_boost,
            'overlap_penalty': penalty,
        }
        return Candidate(group_id=group.id, label=group.label, score=final_score, details=details)

    # ─── Signal classification ──────────────────────────────────────

    def _table_warning(self, stats):
        rolling = stats['rolling']
        if not rolling or not rolling['sufficient_data']:
            return None
        s = self.strategy
        if rolling['current_loss_streak'] >= s.warning_loss_streak_threshold:
            return f"Table change warning: {rolling['current_loss_streak']} recent losses"
        if rolling['win_rate'] < s.warning_rolling_win_rate_threshold:
            return f"Table change warning: {rolling['win_rate']:.0f}% win rate"
        shift = stats['factor_shift']
        if shift and shift['is_shifting'] and rolling['win_rate'] < s.default_average_win_rate:
            return 'Table change warning: driving factors shifting'
        return None

    def classify(self, best, stats):
        """Signal tier and reason for the top candidate."""
        s = self.strategy
        toggles = self.toggles

        if toggles.use_table_change_warnings:
            warning = self._table_warning(stats)
            if warning:
                return SIGNAL_AVOID, warning

        reason = ', '.join(best.details['reason']) or 'General patterns'
        score = best.score

        if toggles.use_adaptive_play:
            if toggles.use_less_strict:
                strong, play = s.less_strict_strong_play_threshold, s.less_strict_play_threshold
            else:
                strong, play = s.adaptive_strong_play_threshold, s.adaptive_play_threshold
            if score >= strong:
                signal = SIGNAL_STRONG_PLAY
            elif score >= play:
                signal = SIGNAL_PLAY
            else:
                signal = SIGNAL_WAIT
            if (toggles.use_less_strict and signal == SIGNAL_WAIT
                    and best.details['hit_rate'] >= s.less_strict_high_hit_rate_threshold
                    and best.details['current_streak'] >= s.less_strict_min_streak):
                signal = SIGNAL_STRONG_PLAY
        else:
            signal = SIGNAL_PLAY if score >= s.simple_play_threshold else SIGNAL_WAIT

        if toggles.use_trend_confirmation and signal in PLAY_SIGNALS:
            trend = stats['trend']
            established = (trend.last_success_state
                           and trend.resolved_count >= s.min_trend_history_for_confirmation)
            if not established:
                signal, reason = SIGNAL_WAIT, 'No established trend to confirm'
            elif best.group_id not in trend.last_success_state:
                signal, reason = SIGNAL_WAIT, 'Trend not confirmed'

        return signal, reason

    # ─── Entry point ────────────────────────────────────────────────

    def recommend(self, num1, num2, history, influences, last_winning_number=None,
                  external_probabilities=None, failed_zones=None, stats=None):
        """Score all groups for the pair (num1, num2) and pick one to play.

        Args:
            history: chronological resolved records preceding this spin
            influences: AdaptiveInfluences for this run
            last_winning_number: most recent winning pocket, or None
            external_probabilities: optional dict group_id → probability
            failed_zones: hit zones of recent failed recommendations
            stats: precomputed collect_stats(history), if available

        Returns:
            Recommendation
        """
        if stats is None:
            stats = self.collect_stats(history)

        candidates = []
        for group in self.groups:
            candidate = self.score_group(group, num1, num2, stats, influences,
                                         last_winning_number, external_probabilities,
                                         failed_zones)
            if not math.isnan(candidate.score):
                candidates.append(candidate)

        if not candidates:
            return Recommendation(None, [], SIGNAL_NO_PLAY, 'Not enough data')

        candidates.sort(key=lambda c: c.score, reverse=True)
        best = candidates[0]
        if best.score <= 0:
            return Recommendation(None, candidates, SIGNAL_NO_PLAY, 'No clear signal')

        signal, reason = self.classify(best, stats)

        focus = []
        if self.toggles.use_neighbour_focus and signal in PLAY_SIGNALS:
            scores = stats['neighbours']
            hot = [(pocket, float(scores[pocket])) for pocket in best.details['hit_zone']
                   if scores[pocket] > 0]
            hot.sort(key=lambda item: item[1], reverse=True)
            focus = [pocket for pocket, _ in hot[:NEIGHBOUR_FOCUS_COUNT]]

        return Recommendation(best, candidates, signal, reason, focus)
