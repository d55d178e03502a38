"""Actors, methods, triggers, patterns and results shared by policies."""