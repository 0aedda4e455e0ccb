import random
import secrets
import string

from .errors import ValidationError

CODE_ALPHABET = string.ascii_uppercase + string.digits
GRID_SIZE = 10

_system_rng = random.SystemRandom()


def new_game_code(length: int = 6) -> str:
    """Generate a short, shareable game code.

    Uniqueness is enforced by the database; callers retry on a duplicate.
    """
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def _shuffled_labels(rng) -> list[int]:
    labels = list(range(GRID_SIZE))
    rng.shuffle(labels)  # Fisher-Yates
    return labels


def new_grid_labels(rng=None) -> tuple[list[int], list[int]]:
    """Return independent random (rows, cols) permutations of the digits 0-9."""
    rng = rng or _system_rng
    return _shuffled_labels(rng), _shuffled_labels(rng)


def parse_cell(raw) -> tuple[int, int]:
    """Coerce a {'row', 'col'} mapping or (row, col) pair into a grid cell."""
    try:
        if isinstance(raw, dict):
            row, col = raw['row'], raw['col']
        else:
            row, col = raw
    except (KeyError, TypeError, ValueError):
        raise ValidationError('Each square needs a row and a col') from None
    if isinstance(row, bool) or isinstance(col, bool) or not isinstance(row, int) or not isinstance(col, int):
        raise ValidationError('Square row and col must be integers')
    if not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
        raise ValidationError(f'Square ({row}, {col}) is off the grid')
    return row, col


def parse_cells(raw_cells) -> list[tuple[int, int]]:
    if not isinstance(raw_cells, (list, tuple)):
        raise ValidationError('Squares must be a list')
    return [parse_cell(c) for c in raw_cells]
