"""
Analytics package for driving behavior.

This package provides:
- Eco-driving and smoothness scoring
- Fatigue risk estimation
- Speed discipline statistics
"""
