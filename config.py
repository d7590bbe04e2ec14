"""
Configuration constants for the Roulette Group Strategy Optimizer.
Single source of truth for all tunable parameters.
"""

import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# ─── European Roulette Wheel Layout ──────────────────────────────────
# Physical wheel order (clockwise from 0)
WHEEL_ORDER = [
    0, 32, 15, 19, 4, 21, 2, 25, 17, 34, 6, 27, 13, 36,
    11, 30, 8, 23, 10, 5, 24, 16, 33, 1, 20, 14, 31, 9,
    22, 18, 29, 7, 28, 12, 35, 3, 26
]

TOTAL_NUMBERS = 37  # 0-36

# Number to wheel position mapping
NUMBER_TO_POSITION = {num: idx for idx, num in enumerate(WHEEL_ORDER)}

RED_NUMBERS = {1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36}
BLACK_NUMBERS = {2, 4, 6, 8, 10, 11, 13, 15, 17, 20, 22, 24, 26, 28, 29, 31, 33, 35}

# ─── Terminal Table ──────────────────────────────────────────────────
# Static base pocket → terminal pockets. Drives hit zone widening.
TERMINAL_MAPPING = {
    0: [4, 6], 1: [8], 2: [7, 9], 3: [8], 4: [11], 5: [12, 10], 6: [11], 7: [14, 2],
    8: [15, 13, 3, 1], 9: [14, 2], 10: [17, 5], 11: [18, 16, 6, 4], 12: [17, 5],
    13: [20, 23], 14: [9, 21, 7, 19], 15: [8, 20], 16: [11], 17: [12, 24, 10, 22],
    18: [11, 23], 19: [14, 26], 20: [13, 25, 15, 27], 21: [14, 26], 22: [17, 29],
    23: [18, 30, 16, 28], 24: [17, 29], 25: [20, 32], 26: [19, 31, 33, 21],
    27: [20, 32], 28: [23, 35], 29: [22, 34, 24, 36], 30: [23, 35], 31: [26],
    32: [25, 27], 33: [26], 34: [29], 35: [28, 30], 36: [29]
}

# ─── Hit Zone Neighbour Counts ───────────────────────────────────────
SINGLE_TERMINAL_BASE_NEIGHBOURS = 3     # Base widening when exactly one terminal
MULTI_TERMINAL_BASE_NEIGHBOURS = 1      # Base widening when 2+ terminals
FEW_TERMINALS_NEIGHBOURS = 3            # Terminal widening with 1-2 terminals
MANY_TERMINALS_NEIGHBOURS = 1           # Terminal widening with 3+ terminals

# ─── Adaptive Influence Factors ──────────────────────────────────────
FACTOR_HIT_RATE = 'Hit Rate'
FACTOR_STREAK = 'Streak'
FACTOR_PROXIMITY = 'Proximity to Last Spin'
FACTOR_HOT_ZONE = 'Hot Zone Weighting'
FACTOR_AI_CONFIDENCE = 'High AI Confidence'
FACTOR_STATISTICAL_TRENDS = 'Statistical Trends'

INFLUENCE_FACTORS = (
    FACTOR_HIT_RATE, FACTOR_STREAK, FACTOR_PROXIMITY,
    FACTOR_HOT_ZONE, FACTOR_AI_CONFIDENCE, FACTOR_STATISTICAL_TRENDS,
)
DEFAULT_PRIMARY_FACTOR = FACTOR_STATISTICAL_TRENDS  # Label when nothing drove the score
INFLUENCE_FORGET_INTERVAL = 5           # Decay influences every N resolved spins

# ─── Signals ─────────────────────────────────────────────────────────
SIGNAL_STRONG_PLAY = 'Strong Play'
SIGNAL_PLAY = 'Play'
SIGNAL_WAIT = 'Wait'
SIGNAL_AVOID = 'Avoid Play'
SIGNAL_NO_PLAY = 'Wait for Signal'

NEIGHBOUR_FOCUS_COUNT = 5               # Hot pockets listed with a play signal
OVERLAP_MAX_PENALTY = 0.3               # Full overlap with failed zones costs 30%
LOW_POCKET_DISTANCE_BOOST_POINTS = 5    # Scaled by LOW_POCKET_DISTANCE_BOOST_MULTIPLIER

# ─── Core Strategy Configuration ─────────────────────────────────────
# Defaults for the live engine. Every key is also a gene in PARAMETER_SPACE.
STRATEGY_CONFIG = {
    'decay_factor': 0.88,
    'hit_rate_threshold': 40,
    'hit_rate_multiplier': 0.5,
    'streak_multiplier': 5,
    'max_streak_points': 15,
    'proximity_max_distance': 5,
    'proximity_multiplier': 2,
    'neighbour_multiplier': 0.5,
    'max_neighbour_points': 10,
    'ai_confidence_multiplier': 25,
    'min_ai_points_for_reason': 5,
    'conditional_prob_multiplier': 10,
    'min_conditional_sample_size': 3,
    'adaptive_strong_play_threshold': 50,
    'adaptive_play_threshold': 20,
    'simple_play_threshold': 20,
    'less_strict_strong_play_threshold': 40,
    'less_strict_play_threshold': 10,
    'less_strict_high_hit_rate_threshold': 60,
    'less_strict_min_streak': 3,
    'min_trend_history_for_confirmation': 3,
    'warning_rolling_window_size': 10,
    'warning_min_plays_for_eval': 5,
    'warning_loss_streak_threshold': 4,
    'warning_rolling_win_rate_threshold': 40,
    'default_average_win_rate': 45,
    'warning_factor_shift_window_size': 5,
    'warning_factor_shift_diversity_threshold': 0.8,
    'warning_factor_shift_min_dominance_percent': 50,
    'low_pocket_distance_boost_multiplier': 1.5,
    'high_pocket_distance_suppress_multiplier': 0.5,
    'overlap_penalty_weight': 0.2,
    'recent_failure_window': 3,
    'adaptive_success_rate': 0.15,
    'adaptive_failure_rate': 0.1,
    'min_adaptive_influence': 0.2,
    'max_adaptive_influence': 2.5,
    'forget_factor': 0.995,
    'confidence_weighting_multiplier': 0.01,
    'confidence_weighting_min_threshold': 10,
}

# ─── Genome Parameter Space ──────────────────────────────────────────
# (name, min, max, step) - order is the PRNG draw order, never reorder.
PARAMETER_SPACE = (
    ('decay_factor', 0.5, 0.99, 0.01),
    ('hit_rate_threshold', 20, 60, 1),
    ('hit_rate_multiplier', 0.1, 2.0, 0.1),
    ('streak_multiplier', 1, 15, 1),
    ('max_streak_points', 5, 30, 1),
    ('proximity_max_distance', 1, 10, 1),
    ('proximity_multiplier', 0.5, 5.0, 0.5),
    ('neighbour_multiplier', 0.1, 2.0, 0.1),
    ('max_neighbour_points', 5, 30, 1),
    ('ai_confidence_multiplier', 0, 50, 5),
    ('min_ai_points_for_reason', 1, 20, 1),
    ('conditional_prob_multiplier', 1, 30, 1),
    ('min_conditional_sample_size', 1, 10, 1),
    ('adaptive_strong_play_threshold', 20, 80, 5),
    ('adaptive_play_threshold', 5, 40, 5),
    ('simple_play_threshold', 1, 20, 1),
    ('less_strict_strong_play_threshold', 15, 60, 5),
    ('less_strict_play_threshold', 1, 30, 5),
    ('less_strict_high_hit_rate_threshold', 40, 80, 5),
    ('less_strict_min_streak', 1, 5, 1),
    ('min_trend_history_for_confirmation', 1, 10, 1),
    ('warning_rolling_window_size', 5, 30, 1),
    ('warning_min_plays_for_eval', 3, 15, 1),
    ('warning_loss_streak_threshold', 2, 10, 1),
    ('warning_rolling_win_rate_threshold', 20, 50, 5),
    ('default_average_win_rate', 20, 50, 1),
    ('warning_factor_shift_window_size', 3, 15, 1),
    ('warning_factor_shift_diversity_threshold', 0.3, 0.9, 0.05),
    ('warning_factor_shift_min_dominance_percent', 20, 60, 5),
    ('low_pocket_distance_boost_multiplier', 1.0, 3.0, 0.1),
    ('high_pocket_distance_suppress_multiplier', 0.1, 1.0, 0.1),
    ('overlap_penalty_weight', 0.0, 1.0, 0.05),
    ('recent_failure_window', 1, 10, 1),
    ('adaptive_success_rate', 0.01, 0.5, 0.01),
    ('adaptive_failure_rate', 0.01, 0.3, 0.01),
    ('min_adaptive_influence', 0.1, 1.0, 0.1),
    ('max_adaptive_influence', 1.5, 5.0, 0.1),
    ('forget_factor', 0.9, 0.999, 0.001),
    ('confidence_weighting_multiplier', 0.001, 0.05, 0.001),
    ('confidence_weighting_min_threshold', 5, 30, 1),
)

# ─── Feature Toggles ─────────────────────────────────────────────────
TOGGLES = {
    'use_trend_confirmation': False,
    'use_weighted_zone': True,
    'use_proximity_boost': True,
    'use_adaptive_play': True,
    'use_less_strict': False,
    'use_table_change_warnings': False,
    'use_neighbour_focus': False,
    'use_lowest_pocket_distance': False,
    'use_dynamic_terminal_neighbour_count': False,
    'use_conditional_probability': True,
    'use_overlap_penalty': False,
}

# ─── Genetic Algorithm ───────────────────────────────────────────────
GA_CONFIG = {
    'population_size': 20,
    'max_generations': 20,
    'mutation_rate': 0.15,
    'crossover_rate': 0.7,
    'elite_count': 2,
}
TOURNAMENT_SIZE = 5                     # Best of k random draws
GENE_DECIMALS = 4                       # Sampled gene values rounded to this

# ─── Fitness ─────────────────────────────────────────────────────────
FITNESS_WINDOW_WEIGHTS = (0.8, 1.0, 1.2)  # Oldest → newest, rewards recency
FITNESS_MIN_WINDOW_SPINS = 5            # Windows with fewer usable spins are skipped
WILSON_Z = 1.96                         # 95% confidence
SAMPLE_SIZE_FULL_CONFIDENCE = 30        # Plays needed for full sample confidence
STABILITY_MIN_SAMPLES = 5               # Below this stability is neutral (1.0)
CALIBRATION_MIN_SAMPLES = 10            # Below this calibration is neutral (0.5)
ROLLING_WIN_RATE_WINDOW = 10            # Plays per rolling win rate sample
RECENCY_HALF_LIFE = 10                  # Plays until a result weighs half as much
RECENCY_BONUS_SCALE = 0.5               # Bonus = 1 + scale * (weighted rate - 0.5)
STREAK_CONSISTENCY_WEIGHT = 0.2         # Max streak consistency bonus

# ─── Server Settings ─────────────────────────────────────────────────
HOST = '0.0.0.0'
PORT = 5050
DEBUG = False
SECRET_KEY = 'roulette-group-optimizer-2024'
USERDATA_DIR = os.path.join(BASE_DIR, 'userdata')


def get_number_color(number):
    if number in RED_NUMBERS:
        return 'red'
    elif number in BLACK_NUMBERS:
        return 'black'
    return 'green'
