"""MindCoach: AI-guided cognitive training session engine."""

__version__ = "0.1.0"
