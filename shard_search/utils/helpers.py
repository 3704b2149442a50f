"""
Utility functions for the sharded search system
"""
import os
from typing import Any, Dict
import psutil


def truncate_snippet(text: str, max_length: int = 200, ellipsis: str = "...") -> str:
    """
    Cut text down to a snippet

    Args:
        text: Original text
        max_length: Maximum number of characters kept
        ellipsis: Marker appended when text was cut

    Returns:
        The text itself if it fits, otherwise its first max_length
        characters followed by the ellipsis marker
    """
    if len(text) <= max_length:
        return text
    return text[:max_length] + ellipsis


def get_system_info() -> Dict[str, Any]:
    """
    Get a short resource usage summary for health endpoints

    Returns:
        Dictionary with system information
    """
    memory = psutil.virtual_memory()
    return {
        "pid": os.getpid(),
        "cpu_count": psutil.cpu_count(),
        "cpu_percent": psutil.cpu_percent(),
        "memory_percent": memory.percent,
        "process_memory_mb": round(psutil.Process().memory_info().rss / (1024 * 1024), 1),
    }


def format_count(count: int, noun: str) -> str:
    """
    Format a count with a naively pluralized noun

    Args:
        count: Number of items
        noun: Singular noun

    Returns:
        e.g. '1 result', '3 results'
    """
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"
