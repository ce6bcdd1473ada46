"""
Central version constant for flowsim.
"""

__version__ = "0.4.0"
