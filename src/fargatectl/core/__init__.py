"""Core deployment and task management logic."""
