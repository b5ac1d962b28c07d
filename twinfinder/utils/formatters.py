"""
Formatting utilities for TwinFinder.

Provides human-readable formatting for numbers and similarity percentages.
"""

from __future__ import annotations


def format_number(n: int) -> str:
    """
    Format large numbers with commas for readability.

    Examples:
        >>> format_number(1234567)
        '1,234,567'
    """
    return f"{n:,}"


def format_percent(value: float) -> str:
    """
    Format a similarity in [0, 1] as a percentage with one decimal.

    Examples:
        >>> format_percent(0.875)
        '87.5%'
        >>> format_percent(1.0)
        '100.0%'
    """
    return f"{value * 100:.1f}%"


__all__ = ['format_number', 'format_percent']
