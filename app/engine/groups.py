"""
Group Catalog - the fixed calculation groups.

Each group maps the two most recent spin numbers to a base pocket using a
simple difference or sum rule. Results outside 0-36 wrap modulo 37 so every
group always yields a playable pocket.
"""

from dataclasses import dataclass
from typing import Callable

import sys
sys.path.insert(0, '.')
from config import TERMINAL_MAPPING, TOTAL_NUMBERS


def wrap_base_number(base_num):
    """Wrap any integer into the 0-36 pocket range (negatives included)."""
    return base_num % TOTAL_NUMBERS


@dataclass(frozen=True)
class CalculationGroup:
    id: str
    label: str
    display_label: str
    calculate: Callable[[int, int], int]

    def raw_base(self, num1, num2):
        return self.calculate(num1, num2)

    def base(self, num1, num2):
        """Wrapped base pocket for this pair of spins."""
        return wrap_base_number(self.calculate(num1, num2))


# Catalog order is the tie-break order for equal recommendation scores.
ALL_GROUPS = (
    CalculationGroup('diffMinus', 'Minus', 'Minus Group',
                     lambda n1, n2: abs(n2 - n1) - 1),
    CalculationGroup('diffResult', 'Result', 'Result Group',
                     lambda n1, n2: abs(n2 - n1)),
    CalculationGroup('diffPlus', 'Plus', 'Plus Group',
                     lambda n1, n2: abs(n2 - n1) + 1),
    CalculationGroup('sumMinus', 'Sum (-1)', '+ and -1',
                     lambda n1, n2: (n1 + n2) - 1),
    CalculationGroup('sumResult', 'Sum Result', '+',
                     lambda n1, n2: n1 + n2),
    CalculationGroup('sumPlus', 'Sum (+1)', '+ and +1',
                     lambda n1, n2: (n1 + n2) + 1),
)

GROUPS_BY_ID = {group.id: group for group in ALL_GROUPS}


def get_group(group_id):
    return GROUPS_BY_ID.get(group_id)


def get_active_groups(group_ids=None):
    """Active groups in catalog order. None means every group.

    Unknown ids are ignored.
    """
    if group_ids is None:
        return ALL_GROUPS
    wanted = set(group_ids)
    return tuple(g for g in ALL_GROUPS if g.id in wanted)


def get_terminals(pocket):
    """Static terminal pockets for a base pocket (a fresh list)."""
    return list(TERMINAL_MAPPING.get(pocket, []))
