"""MindBreaker API: gamified learning platform backend."""
