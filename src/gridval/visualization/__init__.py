"""Visualization of result layers."""

from .plotter import ResultPlotter

__all__ = ['ResultPlotter']
