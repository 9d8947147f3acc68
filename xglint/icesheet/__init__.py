"""
xglint.icesheet – regridding between a GCM grid and ice sheets
--------------------------------------------------------------
Public:
    * IceSheet (abstract), IceSheetL0, IceSheetL1
    * MatrixMaker
"""

from .base import HpClassifier, IceSheet, Overlap
from .matrix_maker import MatrixMaker
from .variants import IceSheetL0, IceSheetL1

__all__ = [
    "IceSheet",
    "IceSheetL0",
    "IceSheetL1",
    "MatrixMaker",
    "Overlap",
    "HpClassifier",
]
