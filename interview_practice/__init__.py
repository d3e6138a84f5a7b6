"""Interview Practice - knowledge-backed mock interviews with multiple interviewer personas."""

__version__ = "0.1.0"
