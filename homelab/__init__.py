"""Homelab tools API: Kubernetes, Flux and Talos queries for agent callers."""

__version__ = "1.0.0"
