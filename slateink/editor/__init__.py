"""Annotation editing: model, geometry, gestures, keyboard and history."""
