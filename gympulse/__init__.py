"""
GymPulse Occupancy Estimation

Estimates how busy a gym is right now by blending a synthetic sensor
baseline with geofenced member check-ins, and derives personal, community
and premium analytics from a rolling window of check-ins.
"""

__version__ = "1.0.0"
