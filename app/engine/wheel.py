"""
Wheel Topology - physical adjacency on the European wheel.

Pockets are adjacent by their position in WHEEL_ORDER, never by numeric
value. Neighbour expansion and pocket distance both walk the circular order.
"""

import math

import sys
sys.path.insert(0, '.')
from config import WHEEL_ORDER, NUMBER_TO_POSITION


def get_neighbours(number, count, wheel=None):
    """Pockets within `count` steps either side of `number` on the wheel.

    Steps alternate counter-clockwise then clockwise, duplicates dropped, so a
    count past half the wheel saturates at the other 36 pockets.

    Returns:
        list of pocket numbers (empty for an unknown pocket or count <= 0)
    """
    if wheel is None:
        wheel = WHEEL_ORDER
        index = NUMBER_TO_POSITION.get(number, -1)
    else:
        index = wheel.index(number) if number in wheel else -1
    if index == -1 or count <= 0:
        return []

    size = len(wheel)
    neighbours = []
    seen = {number}
    for step in range(1, count + 1):
        for pos in ((index - step) % size, (index + step) % size):
            pocket = wheel[pos]
            if pocket not in seen:
                seen.add(pocket)
                neighbours.append(pocket)
    return neighbours


def pocket_distance(num1, num2, wheel=None):
    """Shortest number of steps between two pockets around the wheel.

    Returns math.inf when either pocket is not on the wheel.
    """
    if wheel is None:
        wheel = WHEEL_ORDER
        index1 = NUMBER_TO_POSITION.get(num1, -1)
        index2 = NUMBER_TO_POSITION.get(num2, -1)
    else:
        index1 = wheel.index(num1) if num1 in wheel else -1
        index2 = wheel.index(num2) if num2 in wheel else -1
    if index1 == -1 or index2 == -1:
        return math.inf

    direct = abs(index1 - index2)
    return min(direct, len(wheel) - direct)


def min_zone_distance(zone, number, wheel=None):
    """Closest distance from any pocket in `zone` to `number` (inf if empty)."""
    best = math.inf
    for pocket in zone:
        dist = pocket_distance(pocket, number, wheel)
        if dist < best:
            best = dist
    return best
