"""
Wellcoach - Guided wellness training modules with progress gating and achievements.
"""

__version__ = "0.1.0"
