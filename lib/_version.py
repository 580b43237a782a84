"""Version information for SVM cutover automation."""

__version__ = "1.0.0"
__version_date__ = "2026-10-19"
