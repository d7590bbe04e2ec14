"""
Spin Records - one calculation per pair of consecutive spins.

A record is created pending once two consecutive numbers are known and is
resolved exactly once when the winning number arrives. Resolution evaluates
every active group's hit zone against the winning number in one step; after
that the record is treated as read-only history.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Optional

import sys
sys.path.insert(0, '.')
from config import TOTAL_NUMBERS
from app.engine.groups import ALL_GROUPS
from app.engine.hit_zone import group_hit_zone
from app.engine.wheel import min_zone_distance

STATUS_PENDING = 'pending'
STATUS_SUCCESS = 'success'
STATUS_FAIL = 'fail'


class SpinAlreadyResolved(ValueError):
    """Raised when a resolved record is given a second winning number."""


def validate_number(value, name='number'):
    """Coerce to int and check the 0-36 range."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f'{name} must be an integer 0-36, got {value!r}')
    if isinstance(value, float) and value != number:
        raise ValueError(f'{name} must be an integer 0-36, got {value!r}')
    if number < 0 or number >= TOTAL_NUMBERS:
        raise ValueError(f'{name} must be 0-36, got {number}')
    return number


@dataclass
class SpinRecord:
    id: int
    num1: int
    num2: int
    winning_number: Optional[int] = None
    status: str = STATUS_PENDING
    hit_groups: list = field(default_factory=list)
    per_group_hit: dict = field(default_factory=dict)
    pocket_distance: Optional[int] = None
    closest_group_id: Optional[str] = None
    recommended_group_id: Optional[str] = None
    recommended_signal: Optional[str] = None
    recommendation_details: Optional[dict] = None
    recommended_group_pocket_distance: Optional[int] = None

    @property
    def is_resolved(self):
        return self.status != STATUS_PENDING and self.winning_number is not None

    @property
    def recommendation_hit(self):
        """True when a recommended group was among the hit groups."""
        return (self.recommended_group_id is not None
                and self.recommended_group_id in self.hit_groups)

    @property
    def recommendation_score(self):
        if not self.recommendation_details:
            return 0.0
        return self.recommendation_details.get('final_score', 0.0)

    @property
    def primary_factor(self):
        if not self.recommendation_details:
            return None
        return self.recommendation_details.get('primary_driving_factor')

    def pending_copy(self):
        """Fresh pending record over the same two driving spins."""
        return SpinRecord(id=self.id, num1=self.num1, num2=self.num2)

    def resolve(self, winning_number, groups=ALL_GROUPS, dynamic=False):
        """Evaluate every group against the winning number.

        All derived fields are computed first and assigned together, so a
        failure leaves the record pending.

        Raises:
            SpinAlreadyResolved: if the record is not pending
            ValueError: if the winning number is outside 0-36
        """
        if self.status != STATUS_PENDING:
            raise SpinAlreadyResolved(f'Spin record {self.id} is already {self.status}')
        winning_number = validate_number(winning_number, 'winning_number')

        hit_groups = []
        per_group_hit = {}
        min_hit_distance = math.inf
        closest_group_id = None
        closest_distance = math.inf

        for group in groups:
            zone = group_hit_zone(group, self.num1, self.num2, winning_number, dynamic)
            distance = min_zone_distance(zone, winning_number)
            if distance < closest_distance:
                closest_distance = distance
                closest_group_id = group.id

            hit = winning_number in zone
            per_group_hit[group.id] = hit
            if hit:
                hit_groups.append(group.id)
                if distance < min_hit_distance:
                    min_hit_distance = distance

        pocket_distance = None if min_hit_distance == math.inf else int(min_hit_distance)

        self.winning_number = winning_number
        self.hit_groups = hit_groups
        self.per_group_hit = per_group_hit
        self.pocket_distance = pocket_distance
        self.closest_group_id = closest_group_id
        if self.recommended_group_id and self.recommended_group_id in hit_groups:
            self.recommended_group_pocket_distance = pocket_distance
        else:
            self.recommended_group_pocket_distance = None
        self.status = STATUS_SUCCESS if hit_groups else STATUS_FAIL
        return self


def parse_numbers(raw_text):
    """Parse roulette numbers from text (newline or comma separated).

    Tokens that are not integers 0-36 are skipped.
    """
    numbers = []
    lines = raw_text.replace(',', '\n').split('\n')
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            num = int(line)
        except ValueError:
            continue
        if 0 <= num < TOTAL_NUMBERS:
            numbers.append(num)
    return numbers


def build_history(numbers, groups=ALL_GROUPS, dynamic=False):
    """Turn a chronological list of spin numbers into resolved records.

    Record i is driven by numbers[i-2], numbers[i-1] and resolved by numbers[i].
    Fewer than three numbers gives an empty history.
    """
    numbers = [validate_number(n) for n in numbers]
    history = []
    for i in range(2, len(numbers)):
        record = SpinRecord(id=i - 1, num1=numbers[i - 2], num2=numbers[i - 1])
        record.resolve(numbers[i], groups, dynamic)
        history.append(record)
    return history


def _camel_key(key):
    head, *rest = key.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def _snake_key(key):
    return re.sub(r'(?<!^)(?=[A-Z])', '_', key).lower()


def details_to_wire(details):
    """Recommendation details with camelCase top-level keys."""
    if details is None:
        return None
    return {_camel_key(key): value for key, value in details.items()}


def details_from_wire(details):
    """Recommendation details with snake_case top-level keys (either form accepted)."""
    if details is None:
        return None
    return {_snake_key(key): value for key, value in details.items()}


def record_to_dict(record):
    """Wire format used by the UI layer (camelCase keys)."""
    return {
        'id': record.id,
        'num1': record.num1,
        'num2': record.num2,
        'winningNumber': record.winning_number,
        'status': record.status,
        'hitGroups': list(record.hit_groups),
        'perGroupHit': dict(record.per_group_hit),
        'pocketDistance': record.pocket_distance,
        'recommendedGroupId': record.recommended_group_id,
        'recommendationDetails': details_to_wire(record.recommendation_details),
    }


def record_from_dict(data, groups=ALL_GROUPS, dynamic=False):
    """Build a record from its wire format.

    Records that arrive with a winning number but no resolved status are
    resolved here; resolved records keep the hit data they were sent with.
    """
    record = SpinRecord(
        id=int(data.get('id', 0)),
        num1=validate_number(data.get('num1'), 'num1'),
        num2=validate_number(data.get('num2'), 'num2'),
        recommended_group_id=data.get('recommendedGroupId'),
        recommendation_details=details_from_wire(data.get('recommendationDetails')),
    )
    winning = data.get('winningNumber')
    status = data.get('status', STATUS_PENDING)
    if winning is None:
        return record

    if status in (STATUS_SUCCESS, STATUS_FAIL) and 'hitGroups' in data:
        record.winning_number = validate_number(winning, 'winningNumber')
        record.hit_groups = list(data.get('hitGroups') or [])
        record.per_group_hit = dict(data.get('perGroupHit') or
                                    {g.id: g.id in record.hit_groups for g in groups})
        record.pocket_distance = data.get('pocketDistance')
        record.status = STATUS_SUCCESS if record.hit_groups else STATUS_FAIL
        return record

    return record.resolve(winning, groups, dynamic)
