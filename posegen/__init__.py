"""AI Pose Generator - portrait pose variations via Gemini."""

__version__ = "0.1.0"
