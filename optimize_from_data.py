#!/usr/bin/env python3
"""
Optimization Script - Load historical spin data from file and evolve the
strategy configuration against it.

Usage:
    python optimize_from_data.py <data_file> [output_file]
    python optimize_from_data.py data/my_spins.txt
    python optimize_from_data.py data/my_spins.csv userdata/best_config.json

Supported formats:
    - .txt or .csv with one number (0-36) per line
    - Lines with non-numeric content are skipped (headers, comments)
    - Most recent number should be at the bottom of the file
"""

import os
import sys
import json
import time

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import USERDATA_DIR, GA_CONFIG, TOTAL_NUMBERS, get_number_color
from app.engine.spins import build_history
from app.optimizer.genetic import GeneticOptimizer, RunContext, RunState
from app.optimizer.parameters import to_config_document


def load_data(filepath):
    """Load spin numbers from a text/csv file (one number per line)."""
    if not os.path.exists(filepath):
        print(f"  ERROR: File not found: {filepath}")
        sys.exit(1)

    numbers = []
    skipped = 0
    with open(filepath, 'r') as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            # Handle CSV with multiple columns - take first column
            value = line.split(',')[0].strip()

            try:
                num = int(value)
            except ValueError:
                skipped += 1
                if line_num > 3:
                    print(f"  WARNING: Line {line_num}: '{line}' is not a number, skipped")
                continue

            if 0 <= num <= 36:
                numbers.append(num)
            else:
                skipped += 1
                print(f"  WARNING: Line {line_num}: '{num}' out of range (0-36), skipped")

    return numbers, skipped


def validate_data(numbers):
    """Basic summary of the dataset before optimizing."""
    from collections import Counter
    counts = Counter(numbers)
    total = len(numbers)

    print(f"\n  Dataset Validation:")
    print(f"  {'─' * 40}")
    print(f"  Total spins:        {total}")
    print(f"  Unique numbers:     {len(counts)}/{TOTAL_NUMBERS}")

    colors = Counter(get_number_color(n) for n in numbers)
    print(f"  Red / Black / Green: {colors['red']} / {colors['black']} / {colors['green']}")
    print(f"  Zero share:         {colors['green'] / total * 100:.1f}% [expected 2.7%]")


def print_progress(report):
    bar = "█" * int(report.generation / report.max_generations * 30)
    print(f"  Gen {report.generation:3d}/{report.max_generations}  "
          f"best={report.best_fitness:.4f}  {bar}")


def save_document(document, filepath):
    os.makedirs(os.path.dirname(os.path.abspath(filepath)), exist_ok=True)
    with open(filepath, 'w') as f:
        json.dump(document, f, indent=2)


def main():
    if len(sys.argv) < 2:
        print("\nUsage: python optimize_from_data.py <data_file> [output_file]")
        print("\nExample:")
        print("  python optimize_from_data.py data/my_spins.txt")
        print("\nFile format: one number (0-36) per line, most recent at bottom")
        sys.exit(1)

    filepath = sys.argv[1]
    output = sys.argv[2] if len(sys.argv) > 2 else os.path.join(USERDATA_DIR, 'optimized_config.json')

    print(f"\n{'═' * 60}")
    print(f"  ROULETTE GROUP STRATEGY - OPTIMIZATION")
    print(f"{'═' * 60}")
    print(f"\n  Loading data from: {filepath}")

    numbers, skipped = load_data(filepath)
    if len(numbers) < 3:
        print("  ERROR: Need at least 3 valid numbers in file!")
        sys.exit(1)

    print(f"  Loaded:  {len(numbers)} spin numbers")
    if skipped > 0:
        print(f"  Skipped: {skipped} invalid lines")

    validate_data(numbers)

    history = build_history(numbers)
    context = RunContext.create(history, ga_settings=GA_CONFIG)
    print(f"  Records: {len(history)}  Seed: {context.seed}")
    print(f"  Population: {context.settings.population_size}  "
          f"Generations: {context.settings.max_generations}\n")

    t0 = time.time()
    result = GeneticOptimizer(context).run(on_progress=print_progress)
    elapsed = time.time() - t0

    if result.state != RunState.COMPLETED:
        print(f"\n  Optimization {result.state.value}: {result.message or ''}")
        sys.exit(1)

    document = to_config_document(result.best_genome)
    save_document(document, output)

    print(f"\n{'═' * 60}")
    print(f"  OPTIMIZATION COMPLETE")
    print(f"{'═' * 60}")
    print(f"  Best fitness:  {result.best_fitness:.4f}")
    print(f"  Generations:   {result.generation}")
    print(f"  Time:          {elapsed:.1f}s")
    print(f"  Config saved:  {output}")
    print(f"{'═' * 60}\n")


if __name__ == '__main__':
    main()
