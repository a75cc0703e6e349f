"""Rendering and batch entry points for VABNSim results."""
