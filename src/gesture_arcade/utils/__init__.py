"""Configuration, logging, performance and visualization helpers."""
from .performance import PerformanceMonitor, PerformanceMetrics

__all__ = ["PerformanceMonitor", "PerformanceMetrics"]
