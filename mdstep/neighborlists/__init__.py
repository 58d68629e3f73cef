"""Cell list and Verlet neighbor list."""

from .cell import Cell, CellList
from .verlet import NeighborList, RebuildTrigger

__all__ = ["Cell", "CellList", "NeighborList", "RebuildTrigger"]
