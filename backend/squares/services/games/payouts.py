import math
from numbers import Real
from typing import Optional, Tuple

from squares.models import QUARTERS
from .codes import GRID_SIZE
from .errors import ValidationError


def validate_scoring(scoring) -> dict:
    """Check the four payout percentages and return them keyed by quarter.

    Each must be a non-negative number and together they must total 100.
    """
    if not isinstance(scoring, dict):
        raise ValidationError('Scoring must map each quarter to a percentage')
    missing = [q for q in QUARTERS if q not in scoring]
    if missing:
        raise ValidationError(f"Scoring is missing {', '.join(missing)}")
    values = {}
    for quarter in QUARTERS:
        value = scoring[quarter]
        if isinstance(value, bool) or not isinstance(value, Real) or math.isnan(value) or value < 0:
            raise ValidationError(f'Invalid scoring percentage for {quarter}')
        values[quarter] = value
    if not math.isclose(sum(values.values()), 100, abs_tol=1e-9):
        raise ValidationError('Scoring percentages must add up to 100')
    return values


def compute_prize_pool(claimed_square_count: int, square_cost: float) -> float:
    # Unclaimed squares contribute nothing
    return claimed_square_count * square_cost


def compute_payouts(prize_pool: float, scoring: dict) -> dict:
    return {quarter: prize_pool * scoring[quarter] / 100 for quarter in QUARTERS}


def winning_cell(score: dict, rows: list, cols: list) -> Optional[Tuple[int, int]]:
    """Map a score to the storage (row, col) of the winning square.

    The last digit of the vertical team's score selects the row whose label
    matches, the horizontal team's last digit selects the column.
    """
    row_label = int(score['vertical']) % GRID_SIZE
    col_label = int(score['horizontal']) % GRID_SIZE
    try:
        return rows.index(row_label), cols.index(col_label)
    except ValueError:
        return None
