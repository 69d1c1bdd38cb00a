"""Turf: territory claim engine."""
