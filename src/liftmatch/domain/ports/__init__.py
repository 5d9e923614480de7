"""Ports between the resolution core and its collaborators."""
