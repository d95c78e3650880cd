"""FeedbackHub – feedback collection with AI-assisted analysis."""

__version__ = "1.0.0"
