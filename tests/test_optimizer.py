"""
Unit Tests for the optimizer: Mulberry32, parameter schema, composite
fitness statistics, FitnessEvaluator and GeneticOptimizer.

Uses hardcoded real roulette data so every run is reproducible.
"""
import math
import pytest
import sys
import os

# Add project root to path
PROJECT_ROOT = os.path.join(os.path.dirname(__file__), '..')
sys.path.insert(0, PROJECT_ROOT)

from config import PARAMETER_SPACE, STRATEGY_CONFIG, FITNESS_WINDOW_WEIGHTS
from app.engine.simulation import SimulatedPlay
from app.engine.spins import build_history
from app.optimizer.prng import Mulberry32, derive_seed
from app.optimizer.parameters import (
    ParameterSpec, PARAMETER_SPECS, GENE_NAMES, StrategyConfig, RunToggles, GASettings,
    apply_domain_overrides, to_config_document, from_config_document,
)
from app.optimizer.fitness import (
    split_windows, wilson_lower_bound, coefficient_of_variation, rolling_win_rates,
    stability_score, sample_size_confidence, calibration_score, recency_bonus,
    win_streak_lengths, streak_consistency_bonus, geometric_mean, score_window,
    FitnessEvaluator,
)
from app.optimizer.genetic import (
    GeneticOptimizer, RunContext, RunState, CancellationToken, OptimizationCancelled,
)


REAL_DATA = [18, 26, 28, 35, 16, 28, 22, 35, 1, 20, 3, 35, 20, 23, 7, 24, 22, 2, 33, 35,
             12, 30, 27, 11, 9, 10, 9, 20, 16, 31, 4, 3, 16, 20, 34, 13, 28, 3, 15, 33,
             12, 11, 26, 23, 15, 36, 1, 25, 28, 32, 14, 6, 12, 16, 3, 6, 1, 35, 18, 8,
             30, 21, 29, 4, 8, 28, 1, 30, 4, 10, 30, 23, 36, 29, 28, 13, 3, 34, 9, 31,
             1, 2, 18, 25, 32, 6, 16, 16, 19, 35, 16, 32, 30, 21, 25, 36, 21, 27, 7, 6]

HISTORY_60 = build_history(REAL_DATA[:62])
SMALL_GA = {'population_size': 6, 'max_generations': 3, 'mutation_rate': 0.2,
            'crossover_rate': 0.7, 'elite_count': 2}


class CountingEvaluator:
    """Deterministic stand-in that records how often it was called."""

    def __init__(self):
        self.calls = 0

    def evaluate(self, genome, cancel_token=None):
        self.calls += 1
        return genome.decay_factor * genome.hit_rate_multiplier


class FailingEvaluator:
    def evaluate(self, genome, cancel_token=None):
        raise RuntimeError('evaluator exploded')


def _plays(hits, score=30.0):
    return [SimulatedPlay(score + i, bool(h), 'Play') for i, h in enumerate(hits)]


# ═══════════════════════════════════════════════════════════════
# Mulberry32 Tests
# ═══════════════════════════════════════════════════════════════

class TestMulberry32:
    def test_golden_vector(self):
        prng = Mulberry32(12345)
        assert prng.next_uint32() == 4207900869
        assert prng.next_uint32() == 1317490944
        assert prng.next_uint32() == 2079646450

    def test_golden_float(self):
        assert Mulberry32(12345).next_float() == pytest.approx(0.9797282677609473, abs=1e-15)

    def test_same_seed_same_stream(self):
        a, b = Mulberry32(42), Mulberry32(42)
        assert [a.next_uint32() for _ in range(50)] == [b.next_uint32() for _ in range(50)]

    def test_float_range(self):
        prng = Mulberry32(7)
        for _ in range(1000):
            assert 0.0 <= prng.next_float() < 1.0

    def test_randint_below(self):
        prng = Mulberry32(7)
        values = {prng.randint_below(5) for _ in range(200)}
        assert values == {0, 1, 2, 3, 4}
        with pytest.raises(ValueError):
            prng.randint_below(0)

    def test_seed_masked_to_32_bits(self):
        assert Mulberry32(2 ** 32 + 5).state == 5

    def test_derive_seed(self):
        assert derive_seed(HISTORY_60) == len(HISTORY_60)
        assert derive_seed(HISTORY_60, seed=7) == 7


# ═══════════════════════════════════════════════════════════════
# Parameter Schema Tests
# ═══════════════════════════════════════════════════════════════

class TestParameters:
    def test_schema_matches_defaults(self):
        assert set(GENE_NAMES) == set(STRATEGY_CONFIG)
        assert len(GENE_NAMES) == len(PARAMETER_SPACE)

    def test_defaults_within_domains(self):
        for spec in PARAMETER_SPECS:
            assert spec.min <= STRATEGY_CONFIG[spec.name] <= spec.max

    def test_domain_size(self):
        assert ParameterSpec('x', 1, 30, 5).domain_size == 6
        assert ParameterSpec('x', 0.5, 0.99, 0.01).domain_size == 50
        assert ParameterSpec('x', 1, 30, 5).value_at(5) == 26

    def test_samples_inside_domain(self):
        prng = Mulberry32(3)
        for _ in range(50):
            for spec in PARAMETER_SPECS:
                value = spec.sample(prng)
                assert spec.min <= value <= spec.max

    def test_integral_genes_sample_ints(self):
        prng = Mulberry32(3)
        spec = ParameterSpec('n', 1, 10, 1)
        assert all(isinstance(spec.sample(prng), int) for _ in range(20))

    def test_clamp(self):
        spec = ParameterSpec('x', 0.5, 0.99, 0.01)
        assert spec.clamp(2.0) == 0.99
        assert spec.clamp(0.1) == 0.5

    def test_strategy_config_clamped(self):
        genome = StrategyConfig(decay_factor=5.0, hit_rate_threshold=-3)
        clamped = genome.clamped()
        assert clamped.decay_factor == 0.99
        assert clamped.hit_rate_threshold == 20
        assert genome.decay_factor == 5.0

    def test_is_valid(self):
        assert StrategyConfig().is_valid()
        assert not StrategyConfig(decay_factor=float('nan')).is_valid()
        assert not StrategyConfig(decay_factor=None).is_valid()

    def test_learning_rates(self):
        rates = StrategyConfig(adaptive_success_rate=0.3, max_adaptive_influence=4.0).learning_rates()
        assert rates.success_step == 0.3
        assert rates.max_influence == 4.0

    def test_domain_overrides(self):
        specs = apply_domain_overrides({'decay_factor': {'min': 0.8, 'max': 0.9}})
        narrowed = {s.name: s for s in specs}['decay_factor']
        assert (narrowed.min, narrowed.max, narrowed.step) == (0.8, 0.9, 0.01)
        assert len(specs) == len(PARAMETER_SPECS)

    def test_domain_overrides_rejects_bad_input(self):
        with pytest.raises(ValueError):
            apply_domain_overrides({'not_a_gene': {'min': 1}})
        with pytest.raises(ValueError):
            apply_domain_overrides({'decay_factor': {'min': 0.9, 'max': 0.5}})
        with pytest.raises(ValueError):
            apply_domain_overrides({'decay_factor': {'step': 0}})

    def test_ga_settings_validation(self):
        with pytest.raises(ValueError):
            GASettings(population_size=0)
        with pytest.raises(ValueError):
            GASettings(population_size=4, elite_count=5)
        with pytest.raises(ValueError):
            GASettings(mutation_rate=1.5)
        with pytest.raises(ValueError):
            GASettings(max_generations=0)

    def test_ga_settings_rejects_fractional_ints(self):
        with pytest.raises(ValueError, match='population_size'):
            GASettings.from_dict({'population_size': 2.9})
        with pytest.raises(ValueError, match='eliteCount'):
            GASettings.from_dict({'eliteCount': '1.5'})
        settings = GASettings.from_dict({'populationSize': 8.0, 'max_generations': '5'})
        assert settings.population_size == 8
        assert settings.max_generations == 5

    def test_ga_settings_from_camel_case(self):
        settings = GASettings.from_dict({'populationSize': 8, 'eliteCount': 1})
        assert settings.population_size == 8
        assert settings.elite_count == 1
        assert settings.max_generations == 20

    def test_toggles_from_camel_case(self):
        toggles = RunToggles.from_dict({'useTrendConfirmation': True, 'use_weighted_zone': False})
        assert toggles.use_trend_confirmation
        assert not toggles.use_weighted_zone

    def test_config_document(self):
        genome = StrategyConfig(decay_factor=0.7, adaptive_success_rate=0.2,
                                adaptive_strong_play_threshold=60)
        document = to_config_document(genome)
        assert document['strategyConfig']['decayFactor'] == 0.7
        assert document['strategyConfig']['ADAPTIVE_STRONG_PLAY_THRESHOLD'] == 60
        assert document['adaptiveLearningRates']['successStep'] == 0.2
        assert set(document['adaptiveLearningRates']) == {
            'successStep', 'failureStep', 'minInfluence', 'maxInfluence', 'forgetFactor',
            'confidenceWeightMultiplier', 'confidenceWeightMinThreshold'}
        assert from_config_document(document) == genome


# ═══════════════════════════════════════════════════════════════
# Fitness Statistics Tests
# ═══════════════════════════════════════════════════════════════

class TestFitnessStatistics:
    def test_split_windows(self):
        windows = split_windows(10)
        assert [(w.start_index, w.end_index) for w in windows] == [(0, 3), (3, 6), (6, 10)]
        assert tuple(w.weight for w in windows) == FITNESS_WINDOW_WEIGHTS

    def test_split_windows_empty(self):
        assert split_windows(0) == []

    def test_wilson_zero_wins(self):
        for n in range(0, 60):
            assert wilson_lower_bound(0, n) == 0.0

    def test_wilson_monotonic_in_wins(self):
        for total in (1, 5, 17, 40):
            bounds = [wilson_lower_bound(w, total) for w in range(total + 1)]
            assert bounds == sorted(bounds)

    def test_wilson_small_perfect_sample(self):
        bound = wilson_lower_bound(2, 2)
        assert 0.0 < bound < 2 / 3
        assert bound == pytest.approx(0.3424, abs=1e-4)

    def test_coefficient_of_variation(self):
        assert coefficient_of_variation([]) == 0.0
        assert coefficient_of_variation([5]) == 0.0
        assert coefficient_of_variation([0, 0]) == 0.0
        assert coefficient_of_variation([1, 3]) == pytest.approx(0.5)

    def test_rolling_win_rates(self):
        hits = [True] * 10 + [False] * 2
        rates = rolling_win_rates(hits, window=10)
        assert rates == pytest.approx([1.0, 0.9, 0.8])
        assert rolling_win_rates([True] * 3, window=10) == []

    def test_stability(self):
        assert stability_score([0.5, 0.6]) == 1.0
        assert stability_score([0.5] * 6) == pytest.approx(1.0)
        assert 0.0 < stability_score([0.1, 0.9, 0.1, 0.9, 0.1]) < 1.0

    def test_sample_size_confidence(self):
        assert sample_size_confidence(15) == pytest.approx(0.5)
        assert sample_size_confidence(300) == 1.0

    def test_calibration(self):
        assert calibration_score([1, 2, 3], [1, 0, 1]) == 0.5
        assert calibration_score(list(range(12)), [True] * 12) == 0.5
        scores = list(range(12))
        hits = [False] * 6 + [True] * 6
        assert calibration_score(scores, hits) > 0.5
        assert calibration_score(scores, hits[::-1]) < 0.5

    def test_recency_bonus(self):
        assert recency_bonus([]) == 1.0
        assert recency_bonus([False] * 10) == 1.0
        assert recency_bonus([True] * 10) == pytest.approx(1.25)

    def test_win_streak_lengths(self):
        hits = [True, True, False, True, False, False, True, True, True]
        assert win_streak_lengths(hits) == [2, 1, 3]
        assert win_streak_lengths([]) == []

    def test_streak_consistency_bonus(self):
        assert streak_consistency_bonus([True, False, True, False]) == pytest.approx(1.2)
        assert 1.0 < streak_consistency_bonus([True, False, True, True, True]) < 1.2

    def test_geometric_mean(self):
        assert geometric_mean([]) == 0.0
        assert geometric_mean([4.0, 1.0]) == pytest.approx(2.0)
        assert geometric_mean([0.0, 4.0]) == pytest.approx(4.0)


# ═══════════════════════════════════════════════════════════════
# Window Scoring / FitnessEvaluator Tests
# ═══════════════════════════════════════════════════════════════

class TestFitnessEvaluator:
    def test_empty_window_excluded(self):
        score = score_window([], 1.2)
        assert score.excluded
        assert score.fitness == 0.0

    def test_all_losses_score_zero(self):
        score = score_window(_plays([False] * 8), 1.0)
        assert not score.excluded
        assert score.fitness == 0.0

    def test_window_weight_applied(self):
        hits = [True, False, True, True, False, True]
        light = score_window(_plays(hits), 0.8)
        heavy = score_window(_plays(hits), 1.2)
        assert heavy.fitness == pytest.approx(light.fitness * 1.5)
        assert light.wins == 4
        assert light.losses == 2

    def test_short_history_scores_zero(self):
        evaluator = FitnessEvaluator(build_history(REAL_DATA[:8]))
        assert evaluator.window_scores(StrategyConfig()) == []
        assert evaluator.evaluate(StrategyConfig()) == 0.0

    def test_invalid_genome_scores_zero(self):
        evaluator = FitnessEvaluator(HISTORY_60)
        assert evaluator.evaluate(None) == 0.0
        assert evaluator.evaluate(StrategyConfig(decay_factor=float('inf'))) == 0.0

    def test_fitness_is_finite_and_deterministic(self):
        evaluator = FitnessEvaluator(build_history(REAL_DATA))
        first = evaluator.evaluate(StrategyConfig())
        second = evaluator.evaluate(StrategyConfig())
        assert math.isfinite(first)
        assert first >= 0.0
        assert first == second

    def test_evaluation_honours_cancellation(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OptimizationCancelled):
            FitnessEvaluator(HISTORY_60).evaluate(StrategyConfig(), token)


# ═══════════════════════════════════════════════════════════════
# GeneticOptimizer Tests
# ═══════════════════════════════════════════════════════════════

class TestGeneticOptimizer:
    def _context(self, ga=None, **kwargs):
        return RunContext.create(HISTORY_60, ga_settings=ga or SMALL_GA, **kwargs)

    def test_context_seed_from_history(self):
        assert self._context().seed == len(HISTORY_60)
        assert self._context(seed=99).seed == 99

    def test_create_individual_within_domains(self):
        optimizer = GeneticOptimizer(self._context(), CountingEvaluator())
        genome = optimizer.create_individual().genome
        for spec in PARAMETER_SPECS:
            assert spec.min <= getattr(genome, spec.name) <= spec.max

    def test_crossover_without_mutation_keeps_parent_genes(self):
        ga = dict(SMALL_GA, mutation_rate=0.0)
        optimizer = GeneticOptimizer(self._context(ga), CountingEvaluator())
        parent1 = optimizer.create_individual().genome
        parent2 = optimizer.create_individual().genome
        for _ in range(10):
            child = optimizer.mutate(optimizer.crossover(parent1, parent2))
            for name in GENE_NAMES:
                assert getattr(child, name) in (getattr(parent1, name), getattr(parent2, name))

    def test_mutate_returns_new_genome(self):
        ga = dict(SMALL_GA, mutation_rate=1.0)
        optimizer = GeneticOptimizer(self._context(ga), CountingEvaluator())
        genome = StrategyConfig()
        mutated = optimizer.mutate(genome)
        assert genome == StrategyConfig()
        assert mutated.is_valid()

    def test_tournament_prefers_fitter(self):
        optimizer = GeneticOptimizer(self._context(), CountingEvaluator())
        population = [optimizer.create_individual() for _ in range(3)]
        for i, individual in enumerate(population):
            individual.fitness = float(i)
        picks = [optimizer.select_parent(population).fitness for _ in range(30)]
        assert max(picks) == 2.0
        assert sum(picks) / len(picks) > 1.0

    def test_population_size_invariant(self):
        optimizer = GeneticOptimizer(self._context(), CountingEvaluator())
        for report in optimizer.evolve():
            assert report.population_size == SMALL_GA['population_size']
            assert len(optimizer.population) == SMALL_GA['population_size']

    def test_elites_not_reevaluated(self):
        evaluator = CountingEvaluator()
        GeneticOptimizer(self._context(), evaluator).run()
        # 6 initial + (6 - 2 elites) per later generation
        assert evaluator.calls == 6 + 4 + 4

    def test_best_fitness_non_decreasing(self):
        ga = dict(SMALL_GA, max_generations=6, elite_count=1)
        result = GeneticOptimizer(self._context(ga), CountingEvaluator()).run()
        history = list(result.best_fitness_history)
        assert len(history) == 6
        assert history == sorted(history)

    def test_deterministic_runs(self):
        first = GeneticOptimizer(self._context()).run()
        second = GeneticOptimizer(self._context()).run()
        assert first.state == RunState.COMPLETED
        assert first.best_fitness_history == second.best_fitness_history
        assert first.best_genome == second.best_genome

    def test_progress_reports(self):
        reports = []
        yields = []
        evaluator = CountingEvaluator()
        result = GeneticOptimizer(self._context(), evaluator).run(
            on_progress=reports.append, on_yield=lambda: yields.append(1))
        assert [r.generation for r in reports] == [1, 2, 3]
        assert reports[-1].processed_count == 3 * SMALL_GA['population_size']
        # once per evaluation plus once per generation
        assert len(yields) == evaluator.calls + 3
        payload = reports[0].to_payload()
        assert set(payload) == {'generation', 'max_generations', 'best_fitness', 'best_genome',
                                'processed_count', 'population_size'}
        assert result.generation == 3
        assert result.toggles == RunToggles()

    def test_cancel_before_start(self):
        token = CancellationToken()
        token.cancel()
        optimizer = GeneticOptimizer(self._context(token=token), CountingEvaluator())
        result = optimizer.run()
        assert result.state == RunState.STOPPED
        assert result.best_genome is None
        assert optimizer.state == RunState.STOPPED

    def test_cancel_mid_run(self):
        token = CancellationToken()
        optimizer = GeneticOptimizer(self._context(token=token), CountingEvaluator())
        result = optimizer.run(on_progress=lambda report: token.cancel())
        assert result.state == RunState.STOPPED
        assert result.generation == 1

    def test_cancel_between_evaluations(self):
        token = CancellationToken()
        evaluator = CountingEvaluator()
        optimizer = GeneticOptimizer(self._context(token=token), evaluator)
        yields = []

        def host_yield():
            yields.append(1)
            if len(yields) == 3:
                token.cancel()

        result = optimizer.run(on_yield=host_yield)
        assert result.state == RunState.STOPPED
        assert result.generation == 1
        assert evaluator.calls == 2
        assert result.best_fitness_history == ()

    def test_evaluator_failure_errors_run(self):
        optimizer = GeneticOptimizer(self._context(), FailingEvaluator())
        result = optimizer.run()
        assert result.state == RunState.ERRORED
        assert 'evaluator exploded' in result.message
        assert optimizer.state == RunState.ERRORED
