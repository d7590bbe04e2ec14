"""
Hit Zone Resolver - which pockets count as a win for a group's base pocket.

The zone is the base pocket plus wheel neighbours, plus every terminal of the
base with its own neighbours. Neighbour counts shrink as the terminal count
grows so zones stay comparable in size.
"""

import sys
sys.path.insert(0, '.')
from config import (
    SINGLE_TERMINAL_BASE_NEIGHBOURS, MULTI_TERMINAL_BASE_NEIGHBOURS,
    FEW_TERMINALS_NEIGHBOURS, MANY_TERMINALS_NEIGHBOURS,
)
from app.engine.groups import wrap_base_number, get_terminals
from app.engine.wheel import get_neighbours


def _base_neighbour_count(num_terminals):
    if num_terminals == 1:
        return SINGLE_TERMINAL_BASE_NEIGHBOURS
    if num_terminals >= 2:
        return MULTI_TERMINAL_BASE_NEIGHBOURS
    return 0


def _terminal_neighbour_count(num_terminals):
    if num_terminals in (1, 2):
        return FEW_TERMINALS_NEIGHBOURS
    if num_terminals > 2:
        return MANY_TERMINALS_NEIGHBOURS
    return 0


def get_hit_zone(base_number, terminals=None, winning_number=None, dynamic=False):
    """Expand a base pocket into its hit zone.

    Args:
        base_number: base pocket (wrapped into 0-36 first)
        terminals: terminal pockets; None looks them up in the static table
        winning_number: realized winning pocket, or None while pending
        dynamic: when True and the winning number is the base or one of its
            terminals, terminals get no neighbour widening

    Returns:
        list of pockets in insertion order, base first
    """
    base = wrap_base_number(base_number)
    if terminals is None:
        terminals = get_terminals(base)
    num_terminals = len(terminals)

    zone = [base]
    seen = {base}

    def _add(pocket):
        if pocket not in seen:
            seen.add(pocket)
            zone.append(pocket)

    for pocket in get_neighbours(base, _base_neighbour_count(num_terminals)):
        _add(pocket)

    terminal_count = _terminal_neighbour_count(num_terminals)
    if dynamic and winning_number is not None:
        if winning_number == base or winning_number in terminals:
            terminal_count = 0

    for terminal in terminals:
        _add(terminal)
        for pocket in get_neighbours(terminal, terminal_count):
            _add(pocket)

    return zone


def group_hit_zone(group, num1, num2, winning_number=None, dynamic=False):
    """Hit zone for a calculation group given the two driving spins."""
    base = group.base(num1, num2)
    return get_hit_zone(base, get_terminals(base), winning_number, dynamic)
