"""
NeuroForge learning core.

Spaced-repetition review scheduling (SM-2) and prerequisite-graph
learning-path planning for a microlearning product.
"""

__version__ = "1.0.0"
