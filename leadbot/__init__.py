"""Leadbot - conversational assistant backend with session history and lead analysis."""
