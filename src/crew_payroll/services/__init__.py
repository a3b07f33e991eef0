"""Stateful services: review lifecycle, entry persistence and operations facade."""
