"""
Genome schema and the value objects built once per optimizer run.

The genome is a StrategyConfig: one numeric field per entry of
config.PARAMETER_SPACE, each with a fixed [min, max, step] domain. The
learning-rate genes also yield the AdaptiveLearningRates of a simulation.
"""

import math
from dataclasses import dataclass, asdict, fields, replace

import sys
sys.path.insert(0, '.')
from config import STRATEGY_CONFIG, PARAMETER_SPACE, TOGGLES, GA_CONFIG, GENE_DECIMALS


# ─── Parameter Domains ──────────────────────────────────────────────

@dataclass(frozen=True)
class ParameterSpec:
    name: str
    min: float
    max: float
    step: float

    @property
    def integral(self):
        return float(self.min).is_integer() and float(self.step).is_integer()

    @property
    def domain_size(self):
        """Number of grid values in [min, max]."""
        return int(math.floor((self.max - self.min) / self.step + 1e-9)) + 1

    def value_at(self, index):
        value = round(self.min + index * self.step, GENE_DECIMALS)
        return int(value) if self.integral else value

    def sample(self, prng):
        """min + floor(u * domain_size) * step, from one PRNG draw."""
        return self.value_at(int(math.floor(prng.next_float() * self.domain_size)))

    def clamp(self, value):
        value = max(self.min, min(self.max, value))
        value = round(value, GENE_DECIMALS)
        return int(value) if self.integral and float(value).is_integer() else value

    def to_dict(self):
        return {'name': self.name, 'min': self.min, 'max': self.max, 'step': self.step}


PARAMETER_SPECS = tuple(ParameterSpec(*entry) for entry in PARAMETER_SPACE)
GENE_NAMES = tuple(spec.name for spec in PARAMETER_SPECS)


def apply_domain_overrides(overrides, specs=PARAMETER_SPECS):
    """Narrow gene domains with caller overrides {name: {min, max, step}}.

    Raises:
        ValueError: unknown gene name or an empty/inverted domain
    """
    if not overrides:
        return tuple(specs)
    known = {spec.name for spec in specs}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f'Unknown strategy parameters: {", ".join(unknown)}')

    narrowed = []
    for spec in specs:
        override = overrides.get(spec.name)
        if not override:
            narrowed.append(spec)
            continue
        try:
            lo = float(override.get('min', spec.min))
            hi = float(override.get('max', spec.max))
            step = float(override.get('step', spec.step))
        except (TypeError, ValueError, AttributeError):
            raise ValueError(f'Invalid domain for {spec.name}: {override!r}')
        if step <= 0 or lo > hi or not all(math.isfinite(v) for v in (lo, hi, step)):
            raise ValueError(f'Invalid domain for {spec.name}: min={lo} max={hi} step={step}')
        narrowed.append(ParameterSpec(spec.name, lo, hi, step))
    return tuple(narrowed)


# ─── Learning Rates ─────────────────────────────────────────────────

@dataclass(frozen=True)
class AdaptiveLearningRates:
    success_step: float = STRATEGY_CONFIG['adaptive_success_rate']
    failure_step: float = STRATEGY_CONFIG['adaptive_failure_rate']
    min_influence: float = STRATEGY_CONFIG['min_adaptive_influence']
    max_influence: float = STRATEGY_CONFIG['max_adaptive_influence']
    forget_factor: float = STRATEGY_CONFIG['forget_factor']
    confidence_weight_multiplier: float = STRATEGY_CONFIG['confidence_weighting_multiplier']
    confidence_weight_min_threshold: float = STRATEGY_CONFIG['confidence_weighting_min_threshold']


# Learning-rate field ← genome gene
LEARNING_RATE_GENES = {
    'success_step': 'adaptive_success_rate',
    'failure_step': 'adaptive_failure_rate',
    'min_influence': 'min_adaptive_influence',
    'max_influence': 'max_adaptive_influence',
    'forget_factor': 'forget_factor',
    'confidence_weight_multiplier': 'confidence_weighting_multiplier',
    'confidence_weight_min_threshold': 'confidence_weighting_min_threshold',
}


# ─── Genome ─────────────────────────────────────────────────────────

_D = STRATEGY_CONFIG


@dataclass(frozen=True)
class StrategyConfig:
    decay_factor: float = _D['decay_factor']
    hit_rate_threshold: float = _D['hit_rate_threshold']
    hit_rate_multiplier: float = _D['hit_rate_multiplier']
    streak_multiplier: float = _D['streak_multiplier']
    max_streak_points: float = _D['max_streak_points']
    proximity_max_distance: float = _D['proximity_max_distance']
    proximity_multiplier: float = _D['proximity_multiplier']
    neighbour_multiplier: float = _D['neighbour_multiplier']
    max_neighbour_points: float = _D['max_neighbour_points']
    ai_confidence_multiplier: float = _D['ai_confidence_multiplier']
    min_ai_points_for_reason: float = _D['min_ai_points_for_reason']
    conditional_prob_multiplier: float = _D['conditional_prob_multiplier']
    min_conditional_sample_size: float = _D['min_conditional_sample_size']
    adaptive_strong_play_threshold: float = _D['adaptive_strong_play_threshold']
    adaptive_play_threshold: float = _D['adaptive_play_threshold']
    simple_play_threshold: float = _D['simple_play_threshold']
    less_strict_strong_play_threshold: float = _D['less_strict_strong_play_threshold']
    less_strict_play_threshold: float = _D['less_strict_play_threshold']
    less_strict_high_hit_rate_threshold: float = _D['less_strict_high_hit_rate_threshold']
    less_strict_min_streak: float = _D['less_strict_min_streak']
    min_trend_history_for_confirmation: float = _D['min_trend_history_for_confirmation']
    warning_rolling_window_size: float = _D['warning_rolling_window_size']
    warning_min_plays_for_eval: float = _D['warning_min_plays_for_eval']
    warning_loss_streak_threshold: float = _D['warning_loss_streak_threshold']
    warning_rolling_win_rate_threshold: float = _D['warning_rolling_win_rate_threshold']
    default_average_win_rate: float = _D['default_average_win_rate']
    warning_factor_shift_window_size: float = _D['warning_factor_shift_window_size']
    warning_factor_shift_diversity_threshold: float = _D['warning_factor_shift_diversity_threshold']
    warning_factor_shift_min_dominance_percent: float = _D['warning_factor_shift_min_dominance_percent']
    low_pocket_distance_boost_multiplier: float = _D['low_pocket_distance_boost_multiplier']
    high_pocket_distance_suppress_multiplier: float = _D['high_pocket_distance_suppress_multiplier']
    overlap_penalty_weight: float = _D['overlap_penalty_weight']
    recent_failure_window: float = _D['recent_failure_window']
    adaptive_success_rate: float = _D['adaptive_success_rate']
    adaptive_failure_rate: float = _D['adaptive_failure_rate']
    min_adaptive_influence: float = _D['min_adaptive_influence']
    max_adaptive_influence: float = _D['max_adaptive_influence']
    forget_factor: float = _D['forget_factor']
    confidence_weighting_multiplier: float = _D['confidence_weighting_multiplier']
    confidence_weighting_min_threshold: float = _D['confidence_weighting_min_threshold']

    @classmethod
    def from_dict(cls, data):
        """Build from a snake_case gene map; unknown keys are ignored."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in names})

    def to_dict(self):
        return asdict(self)

    def replace(self, **changes):
        return replace(self, **changes)

    def is_valid(self):
        """Every gene is a finite real number."""
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            if not math.isfinite(value):
                return False
        return True

    def clamped(self, specs=PARAMETER_SPECS):
        """Copy with every gene pulled back inside its domain."""
        return replace(self, **{spec.name: spec.clamp(getattr(self, spec.name)) for spec in specs})

    def learning_rates(self):
        return AdaptiveLearningRates(**{field_name: getattr(self, gene)
                                        for field_name, gene in LEARNING_RATE_GENES.items()})


# ─── Run Settings ───────────────────────────────────────────────────

@dataclass(frozen=True)
class RunToggles:
    use_trend_confirmation: bool = TOGGLES['use_trend_confirmation']
    use_weighted_zone: bool = TOGGLES['use_weighted_zone']
    use_proximity_boost: bool = TOGGLES['use_proximity_boost']
    use_adaptive_play: bool = TOGGLES['use_adaptive_play']
    use_less_strict: bool = TOGGLES['use_less_strict']
    use_table_change_warnings: bool = TOGGLES['use_table_change_warnings']
    use_neighbour_focus: bool = TOGGLES['use_neighbour_focus']
    use_lowest_pocket_distance: bool = TOGGLES['use_lowest_pocket_distance']
    use_dynamic_terminal_neighbour_count: bool = TOGGLES['use_dynamic_terminal_neighbour_count']
    use_conditional_probability: bool = TOGGLES['use_conditional_probability']
    use_overlap_penalty: bool = TOGGLES['use_overlap_penalty']

    @classmethod
    def from_dict(cls, data):
        """Accepts snake_case or camelCase toggle names."""
        names = {f.name: f.name for f in fields(cls)}
        names.update({_camel(f.name): f.name for f in fields(cls)})
        values = {}
        for key, value in (data or {}).items():
            if key in names:
                values[names[key]] = bool(value)
        return cls(**values)

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class GASettings:
    population_size: int = GA_CONFIG['population_size']
    max_generations: int = GA_CONFIG['max_generations']
    mutation_rate: float = GA_CONFIG['mutation_rate']
    crossover_rate: float = GA_CONFIG['crossover_rate']
    elite_count: int = GA_CONFIG['elite_count']

    def __post_init__(self):
        if self.population_size < 1:
            raise ValueError(f'population_size must be >= 1, got {self.population_size}')
        if self.max_generations < 1:
            raise ValueError(f'max_generations must be >= 1, got {self.max_generations}')
        for name in ('mutation_rate', 'crossover_rate'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f'{name} must be within [0, 1], got {value}')
        if not 0 <= self.elite_count <= self.population_size:
            raise ValueError(f'elite_count must be within [0, population_size], got {self.elite_count}')

    @classmethod
    def from_dict(cls, data):
        """Accepts snake_case or camelCase keys; missing keys use GA_CONFIG."""
        data = data or {}
        values = {}
        for f in fields(cls):
            key = f.name if f.name in data else _camel(f.name)
            raw = data.get(key)
            if raw is None:
                continue
            try:
                value = float(raw)
            except (TypeError, ValueError):
                raise ValueError(f'{key} must be numeric, got {raw!r}')
            if f.type is int or f.type == 'int':
                if not value.is_integer():
                    raise ValueError(f'{key} must be an integer, got {raw!r}')
                value = int(value)
            values[f.name] = value
        return cls(**values)

    def to_dict(self):
        return asdict(self)


# ─── Configuration Document ─────────────────────────────────────────
# Exchange format with the UI layer: strategyConfig + adaptiveLearningRates.

UPPER_CASE_GENES = {
    'adaptive_strong_play_threshold', 'adaptive_play_threshold', 'simple_play_threshold',
    'less_strict_strong_play_threshold', 'less_strict_play_threshold',
    'less_strict_high_hit_rate_threshold', 'less_strict_min_streak',
    'min_trend_history_for_confirmation', 'warning_rolling_window_size',
    'warning_min_plays_for_eval', 'warning_loss_streak_threshold',
    'warning_rolling_win_rate_threshold', 'default_average_win_rate',
    'warning_factor_shift_window_size', 'warning_factor_shift_diversity_threshold',
    'warning_factor_shift_min_dominance_percent', 'low_pocket_distance_boost_multiplier',
    'high_pocket_distance_suppress_multiplier',
}


def _camel(name):
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def document_key(gene):
    return gene.upper() if gene in UPPER_CASE_GENES else _camel(gene)


def to_config_document(genome):
    """Genome → {'strategyConfig': {...}, 'adaptiveLearningRates': {...}}."""
    rate_genes = set(LEARNING_RATE_GENES.values())
    strategy = {document_key(name): getattr(genome, name)
                for name in GENE_NAMES if name not in rate_genes}
    rates = {_camel(field_name): value
             for field_name, value in asdict(genome.learning_rates()).items()}
    return {'strategyConfig': strategy, 'adaptiveLearningRates': rates}


def from_config_document(document):
    """Inverse of to_config_document; missing keys keep their defaults."""
    document = document or {}
    strategy = document.get('strategyConfig') or {}
    rates = document.get('adaptiveLearningRates') or {}
    values = {}
    for name in GENE_NAMES:
        key = document_key(name)
        if key in strategy:
            values[name] = strategy[key]
    for field_name, gene in LEARNING_RATE_GENES.items():
        key = _camel(field_name)
        if key in rates:
            values[gene] = rates[key]
    return StrategyConfig(**values)
