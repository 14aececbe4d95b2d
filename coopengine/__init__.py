"""Cooperation Engine - run one prompt script against many chatbots and compare."""

__version__ = "1.0.0"
