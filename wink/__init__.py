"""Hierarchical state machines that exchange messages over UDP, with a client and a machine server."""

__version__ = "0.0.1"