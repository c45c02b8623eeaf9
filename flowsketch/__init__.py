"""
flowsketch - Flow diagram engine.

Parses a compact flowchart notation into a graph, lays it out, supports
direct manipulation through an interaction controller, and exports static
SVG/PNG images.
"""

__version__ = "0.1.0"
