"""
HireLoop - Adaptive Interview Orchestration & Scoring Engine

Drives multi-phase, voice-capable technical interviews that adapt question
depth to live answer evaluation, and folds resume, assessment and interview
scores into a single hiring decision.
"""

__version__ = "0.1.0"
__author__ = "HireLoop Team"
