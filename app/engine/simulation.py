"""
Forward replay of a history slice through the live engine.

Each record is replayed as if it were arriving live: stats come only from the
records already replayed, the scorer picks a group, a fresh pending copy of
the record is resolved with the real winning number, and the adaptive
influences learn from the outcome. Influences start at 1.0 on every call.
"""

from collections import deque
from dataclasses import dataclass

import sys
sys.path.insert(0, '.')
from config import SIGNAL_AVOID
from app.engine.groups import ALL_GROUPS
from app.engine.influences import AdaptiveInfluences
from app.engine.recommendation import RecommendationScorer


@dataclass(frozen=True)
class SimulatedPlay:
    score: float
    hit: bool
    signal: str


def simulate_history(records, strategy, rates, toggles, groups=ALL_GROUPS, cancel_token=None):
    """Replay records oldest → newest and yield every counted play.

    A play is a positive-score recommendation whose signal is not Avoid Play.
    Records without a winning number are skipped. The cancellation token is
    checked once per replayed spin.

    Yields:
        SimulatedPlay
    """
    influences = AdaptiveInfluences(rates)
    scorer = RecommendationScorer(strategy, toggles, groups)
    dynamic = toggles.use_dynamic_terminal_neighbour_count
    failed_zones = deque(maxlen=max(1, int(strategy.recent_failure_window)))
    replayed = []

    for record in records:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        if not record.is_resolved:
            continue

        last_winning = replayed[-1].winning_number if replayed else None
        recommendation = scorer.recommend(record.num1, record.num2, replayed, influences,
                                          last_winning_number=last_winning,
                                          failed_zones=list(failed_zones))
        best = recommendation.best

        replay = record.pending_copy()
        if best is not None:
            replay.recommended_group_id = best.group_id
            replay.recommended_signal = recommendation.signal
            replay.recommendation_details = {
                'final_score': best.score,
                'primary_driving_factor': best.primary_factor,
            }
        replay.resolve(record.winning_number, groups, dynamic)

        if best is not None:
            hit = replay.recommendation_hit
            influences.apply_outcome(best.primary_factor, best.score, hit)
            if not hit:
                failed_zones.append(best.details['hit_zone'])
            if recommendation.signal != SIGNAL_AVOID:
                yield SimulatedPlay(best.score, hit, recommendation.signal)

        influences.tick()
        replayed.append(replay)
