"""
Business rule analyzers for the Roof Compliance Engine.
"""

from .drip_edge import DripEdgeAnalyzer
from .ice_water_barrier import IceWaterBarrierAnalyzer, calculate_pitch_multiplier
from .ridge_cap import RidgeCapAnalyzer
from .starter_strip import StarterStripAnalyzer

__all__ = [
    "DripEdgeAnalyzer",
    "IceWaterBarrierAnalyzer",
    "RidgeCapAnalyzer",
    "StarterStripAnalyzer",
    "calculate_pitch_multiplier",
]
