"""Contract violations raised by the Lagrange point machinery."""

import numpy as np

INT64_MAX = int(np.iinfo(np.int64).max)


class LagrangeError(Exception):
    """Base class for all errors raised by this package."""


class InvalidIndex(LagrangeError, IndexError):
    """Point index, codimension, sub-entity, local dof or lattice coordinate out of range."""


class MalformedTopology(LagrangeError, TypeError):
    """A value that is not built from Point, Cone and Product."""


class CountOverflow(LagrangeError, OverflowError):
    """A point or dof count does not fit the int64 arrays handed to consumers."""


def check_count(count: int, what: str = "count") -> int:
    """Return ``count`` unchanged, or raise if it exceeds the int64 range."""
    if count > INT64_MAX:
        raise CountOverflow(f"{what} = {count} exceeds int64 range")
    return count
