"""
Genetic Optimizer - evolves StrategyConfig genomes against a spin history.

State machine: idle → running → completed | stopped | errored.

Each generation evaluates every not-yet-scored individual, sorts the
population by fitness, reports the generation, carries the elites over
unchanged and breeds the rest by tournament selection, per-gene crossover
and per-gene mutation. All randomness comes from one Mulberry32 stream
seeded from the history, consumed in a fixed order, so a history plus a
seed always replays the same run.

Cancellation is cooperative: the token is checked before each generation,
before each fitness evaluation and once per simulated spin. The host gets
control back before each fitness evaluation through on_yield.
"""

import threading
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import sys
sys.path.insert(0, '.')
from config import TOURNAMENT_SIZE
from app.engine.groups import ALL_GROUPS
from app.optimizer.fitness import FitnessEvaluator
from app.optimizer.parameters import (
    PARAMETER_SPECS, StrategyConfig, RunToggles, GASettings, apply_domain_overrides,
)
from app.optimizer.prng import Mulberry32, derive_seed


class RunState(Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETED = 'completed'
    STOPPED = 'stopped'
    ERRORED = 'errored'


class OptimizationCancelled(Exception):
    """Unwinds a run from wherever the cancellation token was observed."""


class CancellationToken:
    """Thread-safe stop flag shared by a run and whoever may stop it."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self):
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise OptimizationCancelled()


@dataclass(frozen=True)
class RunContext:
    """Immutable snapshot a run owns for its whole duration."""
    history: tuple
    specs: tuple = PARAMETER_SPECS
    settings: GASettings = field(default_factory=GASettings)
    toggles: RunToggles = field(default_factory=RunToggles)
    seed: int = 0
    token: CancellationToken = field(default_factory=CancellationToken)
    groups: tuple = ALL_GROUPS

    @classmethod
    def create(cls, history, strategy_domain=None, ga_settings=None, toggles=None,
               seed=None, token=None, groups=ALL_GROUPS):
        """Build a context from raw caller input.

        Raises:
            ValueError: invalid domain overrides or GA settings
        """
        history = tuple(history)
        if isinstance(ga_settings, GASettings):
            settings = ga_settings
        else:
            settings = GASettings.from_dict(ga_settings)
        if not isinstance(toggles, RunToggles):
            toggles = RunToggles.from_dict(toggles)
        return cls(
            history=history,
            specs=apply_domain_overrides(strategy_domain),
            settings=settings,
            toggles=toggles,
            seed=derive_seed(history, seed),
            token=token or CancellationToken(),
            groups=tuple(groups),
        )


@dataclass
class Individual:
    genome: StrategyConfig
    fitness: float = 0.0
    evaluated: bool = False


@dataclass(frozen=True)
class GenerationReport:
    generation: int
    max_generations: int
    best_fitness: float
    best_genome: StrategyConfig
    processed_count: int
    population_size: int
    fitnesses: tuple = ()

    def to_payload(self):
        return {
            'generation': self.generation,
            'max_generations': self.max_generations,
            'best_fitness': round(self.best_fitness, 6),
            'best_genome': self.best_genome.to_dict(),
            'processed_count': self.processed_count,
            'population_size': self.population_size,
        }


@dataclass(frozen=True)
class OptimizationResult:
    state: RunState
    generation: int = 0
    best_fitness: float = 0.0
    best_genome: Optional[StrategyConfig] = None
    toggles: Optional[RunToggles] = None
    message: Optional[str] = None
    best_fitness_history: tuple = ()


class GeneticOptimizer:
    def __init__(self, context, evaluator=None):
        self.context = context
        self.settings = context.settings
        self.specs = context.specs
        self.evaluator = evaluator or FitnessEvaluator(context.history, context.toggles, context.groups)
        self.prng = Mulberry32(context.seed)
        self.state = RunState.IDLE
        self.generation = 0
        self.population = []
        self.best = None

    # ─── Genetic Operators ──────────────────────────────────────────

    def create_individual(self):
        genes = {spec.name: spec.sample(self.prng) for spec in self.specs}
        return Individual(StrategyConfig(**genes))

    def select_parent(self, population):
        """Tournament: best of TOURNAMENT_SIZE random draws (first wins ties)."""
        best = None
        for _ in range(TOURNAMENT_SIZE):
            candidate = population[self.prng.randint_below(len(population))]
            if best is None or candidate.fitness > best.fitness:
                best = candidate
        return best

    def crossover(self, parent1, parent2):
        """Per-gene coin flip between the two parents."""
        genes = {}
        for spec in self.specs:
            source = parent1 if self.prng.next_float() < 0.5 else parent2
            genes[spec.name] = getattr(source, spec.name)
        return parent1.replace(**genes)

    def mutate(self, genome):
        """New genome with each gene redrawn with probability mutation_rate."""
        changes = {}
        for spec in self.specs:
            if self.prng.chance(self.settings.mutation_rate):
                changes[spec.name] = spec.sample(self.prng)
        return genome.replace(**changes) if changes else genome

    def breed(self, population):
        parent1 = self.select_parent(population)
        parent2 = self.select_parent(population)
        if self.prng.chance(self.settings.crossover_rate):
            child = self.crossover(parent1.genome, parent2.genome)
        else:
            child = parent1.genome
        return Individual(self.mutate(child))

    # ─── Generations ────────────────────────────────────────────────

    def _evaluate(self, population, on_yield=None):
        token = self.context.token
        for individual in population:
            if individual.evaluated:
                continue
            if on_yield:
                on_yield()
            token.raise_if_cancelled()
            individual.fitness = self.evaluator.evaluate(individual.genome, token)
            individual.evaluated = True

    def _next_population(self, ranked):
        size = self.settings.population_size
        elites = [Individual(ind.genome, ind.fitness, ind.evaluated)
                  for ind in ranked[:self.settings.elite_count]]
        children = []
        while len(elites) + len(children) < size:
            self.context.token.raise_if_cancelled()
            children.append(self.breed(ranked))
        return elites + children

    def evolve(self, on_yield=None):
        """Yield a GenerationReport after every evaluated generation.

        on_yield, if given, is called before every fitness evaluation.

        Raises:
            OptimizationCancelled: when the run's token is cancelled
        """
        settings = self.settings
        token = self.context.token
        self.population = [self.create_individual() for _ in range(settings.population_size)]

        for generation in range(1, settings.max_generations + 1):
            token.raise_if_cancelled()
            self.generation = generation
            self._evaluate(self.population, on_yield)

            ranked = sorted(self.population, key=lambda ind: ind.fitness, reverse=True)
            top = ranked[0]
            if self.best is None or top.fitness > self.best.fitness:
                self.best = Individual(top.genome, top.fitness, True)

            yield GenerationReport(
                generation=generation,
                max_generations=settings.max_generations,
                best_fitness=top.fitness,
                best_genome=top.genome,
                processed_count=generation * settings.population_size,
                population_size=len(ranked),
                fitnesses=tuple(ind.fitness for ind in ranked),
            )

            if generation < settings.max_generations:
                self.population = self._next_population(ranked)
            else:
                self.population = ranked

    def run(self, on_progress=None, on_yield=None):
        """Drive the whole run and return its terminal result.

        Args:
            on_progress: called with each GenerationReport
            on_yield: called before each fitness evaluation and after each
                generation so the host can breathe

        Returns:
            OptimizationResult
        """
        ctx = self.context
        self.state = RunState.RUNNING
        history = []
        print(f"[Optimizer] Starting: {len(ctx.history)} records, "
              f"population={self.settings.population_size}, "
              f"generations={self.settings.max_generations}, seed={ctx.seed}")

        try:
            for report in self.evolve(on_yield):
                history.append(report.best_fitness)
                print(f"[Optimizer] Generation {report.generation}/{report.max_generations} "
                      f"best={report.best_fitness:.4f}")
                if on_progress:
                    on_progress(report)
                if on_yield:
                    on_yield()
            ctx.token.raise_if_cancelled()
        except OptimizationCancelled:
            self.state = RunState.STOPPED
            print(f"[Optimizer] Stopped at generation {self.generation}")
            return OptimizationResult(RunState.STOPPED, generation=self.generation,
                                      toggles=ctx.toggles,
                                      best_fitness_history=tuple(history))
        except Exception as exc:
            traceback.print_exc()
            self.state = RunState.ERRORED
            print(f"[Optimizer] Error at generation {self.generation}: {exc}")
            return OptimizationResult(RunState.ERRORED, generation=self.generation,
                                      toggles=ctx.toggles, message=str(exc),
                                      best_fitness_history=tuple(history))

        self.state = RunState.COMPLETED
        print(f"[Optimizer] Complete: best={self.best.fitness:.4f} "
              f"after {self.generation} generations")
        return OptimizationResult(
            RunState.COMPLETED,
            generation=self.generation,
            best_fitness=self.best.fitness,
            best_genome=self.best.genome,
            toggles=ctx.toggles,
            best_fitness_history=tuple(history),
        )
